"""
Change-data-capture iterator over a ticket cursor.

Two background tasks share one tomb:

- the polling task fetches a batch from the cursor on every tick and hands it
  to the ``caches`` channel (one batch), then advances the cursor's low-water
  mark from the last record of the batch;
- the flush task moves records one by one from ``caches`` to ``buffer``
  (one record), where ``next`` picks them up.

Any fetch error kills the group; the next call to ``next`` raises it.
"""
from typing import List, Optional

from zendesk_connector.interfaces.base import ChangeRecord, RecordIterator, TicketCursor
from zendesk_connector.source.position import parse_position
from zendesk_connector.source.tomb import Channel, Tomb, TombDying
from zendesk_connector.utils.errors import IteratorStoppedError
from zendesk_connector.utils.logging import get_logger


class CDCIterator(RecordIterator):
    """Polls a cursor in the background and serves records one at a time."""

    def __init__(self, cursor: TicketCursor, polling_period: float, autostart: bool = True):
        self.cursor = cursor
        self.polling_period = polling_period
        self.tomb = Tomb(name="zendesk-cdc")
        self.caches = Channel(self.tomb, capacity=1)
        self.buffer = Channel(self.tomb, capacity=1)
        self.logger = get_logger(self.__class__.__name__, tomb=self.tomb.name)
        self._started = False
        self._stopped = False

        if autostart:
            self.start()

    def start(self) -> None:
        """Start the polling and flush tasks."""
        if self._started:
            return
        self._started = True
        self.tomb.go(self._poll, name="zendesk-cdc-poll")
        self.tomb.go(self._flush, name="zendesk-cdc-flush")
        self.logger.info("CDC iterator started", polling_period=self.polling_period)

    def _poll(self) -> None:
        dying = self.tomb.dying()
        try:
            # Each wait is one tick; it returns early once the tomb is dying
            while not dying.wait(self.polling_period):
                records = self.cursor.fetch_records()
                if not records:
                    continue

                self.caches.put(records)
                self._advance(records)
        finally:
            self.cursor.close()

    def _advance(self, records: List[ChangeRecord]) -> None:
        position = parse_position(records[-1].position)
        self.cursor.update_last_modified(position.last_modified)
        self.logger.debug(
            f"Queued {len(records)} records",
            last_modified=position.last_modified.isoformat(),
            ticket_id=position.id,
        )

    def _flush(self) -> None:
        while True:
            batch = self.caches.get()
            for record in batch:
                self.buffer.put(record)

    def has_next(self) -> bool:
        """True if a record is ready, or if the tasks died and ``next`` will raise."""
        return len(self.buffer) > 0 or not self.tomb.alive()

    def next(self, timeout: Optional[float] = None) -> ChangeRecord:
        """Return the next record.

        Blocks until a record is available, the task group dies (its cause is
        raised) or ``timeout`` seconds pass (``TimeoutError``).
        """
        try:
            return self.buffer.get(timeout=timeout)
        except TombDying:
            pass

        cause = self.tomb.err()
        if cause is None:
            cause = IteratorStoppedError()
        raise cause

    def stop(self) -> None:
        """Kill the task group; pending and later ``next`` calls raise IteratorStoppedError."""
        if self._stopped:
            return
        self._stopped = True
        self.tomb.kill(IteratorStoppedError())
        if not self._started:
            self.cursor.close()
        self.logger.info("CDC iterator stopped")

    def join(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Wait for the background tasks to exit and return the group's cause."""
        return self.tomb.wait(timeout)
