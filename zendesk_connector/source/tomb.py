"""
Task-group lifecycle coordination for background threads.

A ``Tomb`` tracks a group of threads that live and die together: the first
failure (or an explicit ``kill``) puts the whole group into the dying state
and records the cause. ``Channel`` is a bounded FIFO whose blocking
operations wake up as soon as the group starts dying.
"""
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, List, Optional

from zendesk_connector.utils.logging import get_logger


class TombDying(Exception):
    """Raised from a blocked channel operation when its tomb is dying."""
    pass


class Tomb:
    """Links cancellation, failure propagation and completion of a thread group."""

    def __init__(self, name: str = "tomb"):
        self.name = name
        self._cond = threading.Condition()
        self._dying = threading.Event()
        self._reason: Optional[BaseException] = None
        self._threads: List[threading.Thread] = []
        self.logger = get_logger(self.__class__.__name__, tomb=name)

    @property
    def condition(self) -> threading.Condition:
        """Condition notified whenever the tomb is killed."""
        return self._cond

    def go(self, fn: Callable[[], Any], name: Optional[str] = None) -> threading.Thread:
        """Run ``fn`` in a daemon thread tracked by this tomb.

        An exception raised by ``fn`` kills the tomb with that exception.
        """
        thread = threading.Thread(
            target=self._run,
            args=(fn,),
            name=name or f"{self.name}-{len(self._threads)}",
            daemon=True
        )
        with self._cond:
            self._threads.append(thread)
        thread.start()
        return thread

    def _run(self, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except TombDying:
            pass
        except Exception as e:
            self.logger.exception(f"Task {threading.current_thread().name} failed: {e}")
            self.kill(e)

    def kill(self, reason: Optional[BaseException]) -> None:
        """Put the tomb in the dying state; the first non-None reason is kept."""
        with self._cond:
            if self._reason is None and reason is not None:
                self._reason = reason
            self._dying.set()
            self._cond.notify_all()

    def dying(self) -> threading.Event:
        """Event set once the tomb starts dying."""
        return self._dying

    def alive(self) -> bool:
        return not self._dying.is_set()

    def err(self) -> Optional[BaseException]:
        """Cause of death, or None while alive."""
        with self._cond:
            return self._reason

    def wait(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Wait for every tracked thread to finish and return the cause."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            threads = list(self._threads)

        for thread in threads:
            if thread is threading.current_thread():
                continue
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)

        return self.err()

    def running(self) -> int:
        """Number of tracked threads still running."""
        with self._cond:
            return sum(1 for thread in self._threads if thread.is_alive())


class Channel:
    """Bounded FIFO shared between tasks of one tomb."""

    def __init__(self, tomb: Tomb, capacity: int = 1):
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self._tomb = tomb
        self._cond = tomb.condition
        self._capacity = capacity
        self._items: Deque[Any] = deque()

    def put(self, item: Any) -> None:
        """Block until there is room; raises TombDying if the tomb dies first."""
        with self._cond:
            while True:
                if not self._tomb.alive():
                    raise TombDying()
                if len(self._items) < self._capacity:
                    break
                self._cond.wait()

            self._items.append(item)
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None) -> Any:
        """Block until an item is available.

        Raises TombDying if the tomb dies first and TimeoutError once
        ``timeout`` seconds have passed.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if not self._tomb.alive():
                    raise TombDying()
                if self._items:
                    break

                if deadline is None:
                    self._cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError("timed out waiting for the next record")
                    self._cond.wait(remaining)

            item = self._items.popleft()
            self._cond.notify_all()
            return item

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)
