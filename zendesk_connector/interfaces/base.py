"""
Base interfaces and abstract classes for connector components.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ChangeRecord:
    """One ticket change event."""
    key: str
    payload: bytes
    created_at: Optional[datetime] = None
    position: bytes = b""
    metadata: Dict[str, str] = field(default_factory=dict)


# Called once per written record, with None on success
AckFunc = Callable[[Optional[Exception]], None]


class TicketCursor(ABC):
    """Fetches successive batches of ticket changes."""

    @abstractmethod
    def fetch_records(self) -> Optional[List[ChangeRecord]]:
        """Fetch the next batch; ``None`` means nothing to fetch right now."""
        pass

    @abstractmethod
    def update_last_modified(self, last_modified: datetime) -> None:
        """Advance the low-water mark used for the next time-based fetch."""
        pass

    def close(self) -> None:
        """Release network resources."""
        pass


class RecordIterator(ABC):
    """Pull interface over a stream of change records."""

    @abstractmethod
    def has_next(self) -> bool:
        """Return True when ``next`` would not block."""
        pass

    @abstractmethod
    def next(self, timeout: Optional[float] = None) -> ChangeRecord:
        """Return the next record, blocking until one is available."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop producing records and release background tasks."""
        pass

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for background tasks to exit after ``stop``."""
        pass


class Writer(ABC):
    """Submits batches of records to the destination system."""

    @abstractmethod
    def write(self, records: List[ChangeRecord], cancel: Any = None) -> None:
        """Write a batch of records, raising on failure."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Release network resources."""
        pass


class PipelineComponent(ABC):
    """Base class for source and destination connectors."""

    def __init__(self, component_id: str):
        self.component_id = component_id
        self._logger = None

    @property
    def logger(self):
        """Get logger instance."""
        if self._logger is None:
            from zendesk_connector.utils.logging import get_logger
            self._logger = get_logger(self.__class__.__name__, component=self.component_id)
        return self._logger

    @abstractmethod
    def configure(self, cfg: Dict[str, str]) -> None:
        """Parse and store the host-provided configuration."""
        pass

    @abstractmethod
    def teardown(self) -> None:
        """Release all resources; safe to call when never opened."""
        pass


class SourceConnector(PipelineComponent):
    """Plugin contract for a source."""

    @abstractmethod
    def open(self, position: Optional[bytes]) -> None:
        """Start reading from the given resume position."""
        pass

    @abstractmethod
    def read(self) -> ChangeRecord:
        """Return the next record or raise ``BackoffRetry``."""
        pass

    @abstractmethod
    def ack(self, position: bytes) -> None:
        """Acknowledge that a record was processed downstream."""
        pass


class DestinationConnector(PipelineComponent):
    """Plugin contract for a destination."""

    @abstractmethod
    def open(self) -> None:
        """Prepare the destination for writes."""
        pass

    @abstractmethod
    def write_async(self, record: ChangeRecord, ack: AckFunc) -> None:
        """Buffer a record and acknowledge it once it has been written."""
        pass

    @abstractmethod
    def flush(self) -> None:
        """Write all buffered records."""
        pass
