"""
Buffered Zendesk destination.

Records are collected until ``buffer_size`` is reached and then written as a
single bulk import. Acknowledgements are only sent after a successful write,
in the order the records arrived. The first failed write breaks the
destination for good: every later call returns that error until it is torn
down and opened again.
"""
import threading
from typing import Callable, Dict, List, Optional

from zendesk_connector.config.settings import DestinationConfig, get_settings
from zendesk_connector.interfaces.base import AckFunc, ChangeRecord, DestinationConnector, Writer
from zendesk_connector.utils.errors import ZendeskConnectorError
from zendesk_connector.zendesk.importer import BulkImporter


def default_writer_factory(config: DestinationConfig) -> Writer:
    return BulkImporter(
        config.username,
        config.api_token,
        config.domain,
        max_retries=config.max_retries,
        timeout=get_settings().http_timeout,
    )


class Destination(DestinationConnector):
    """Zendesk destination with an in-memory write buffer."""

    def __init__(self, writer_factory: Callable[[DestinationConfig], Writer] = default_writer_factory):
        super().__init__("zendesk-destination")
        self.writer_factory = writer_factory
        self.config: Optional[DestinationConfig] = None
        self.writer: Optional[Writer] = None
        self.error: Optional[Exception] = None
        self._buffer: List[ChangeRecord] = []
        self._acks: List[AckFunc] = []
        self._lock = threading.Lock()
        self._cancel = threading.Event()

    def configure(self, cfg: Dict[str, str]) -> None:
        self.config = DestinationConfig.parse(cfg)

    def open(self) -> None:
        if self.config is None:
            raise ZendeskConnectorError("destination must be configured before it is opened")

        self._buffer = []
        self._acks = []
        self.error = None
        self._cancel = threading.Event()
        self.writer = self.writer_factory(self.config)
        self.logger.set_context(domain=self.config.domain)
        self.logger.info("Zendesk destination opened", buffer_size=self.config.buffer_size)

    def write_async(self, record: ChangeRecord, ack: AckFunc) -> None:
        """Buffer a record, flushing when the buffer is full.

        Raises the sticky error of an earlier failed flush.
        """
        # Nothing to import for an empty payload
        if not record.payload:
            return

        with self._lock:
            # writer and error only change under the lock
            if self.error is not None:
                raise self.error
            if self.writer is None:
                raise ZendeskConnectorError("destination is not open")

            self._buffer.append(record)
            self._acks.append(ack)

            if len(self._buffer) >= self.config.buffer_size:
                self._flush()

    def flush(self) -> None:
        """Write everything buffered so far."""
        with self._lock:
            self._flush()

    def _flush(self) -> None:
        # Caller holds the lock
        if self.error is not None:
            raise self.error
        if not self._buffer:
            return

        records, self._buffer = self._buffer, []
        acks, self._acks = self._acks, []

        try:
            self.writer.write(records, self._cancel)
        except Exception as e:
            self.error = e
            self.logger.exception(f"Bulk import of {len(records)} tickets failed: {e}")
            raise

        for ack in acks:
            ack(None)

        self.logger.debug(f"Flushed {len(records)} records")

    def teardown(self) -> None:
        """Flush what is left and release the writer; a no-op if never opened.

        Rate-limit waits are cancelled first, so a flush stuck in a backoff
        fails right away instead of holding teardown for the whole wait, and
        the final flush gives up on its first 429.
        """
        if self.writer is None:
            return

        self._cancel.set()

        with self._lock:
            if self.writer is None:
                return
            try:
                if self.error is None:
                    self._flush()
            finally:
                self.writer.stop()
                self.writer = None
                self.logger.info("Zendesk destination torn down")
                self.logger.clear_context()
