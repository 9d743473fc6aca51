"""
Zendesk source connector.
"""
from typing import Callable, Dict, Optional

from zendesk_connector.config.settings import SourceConfig, get_settings
from zendesk_connector.interfaces.base import ChangeRecord, RecordIterator, SourceConnector
from zendesk_connector.source.iterator import CDCIterator
from zendesk_connector.source.position import TicketPosition, parse_position
from zendesk_connector.utils.errors import BackoffRetry, InvalidPositionError, ZendeskConnectorError
from zendesk_connector.zendesk.cursor import Cursor


TEARDOWN_TIMEOUT = 10.0  # seconds to wait for background tasks on teardown


def default_iterator_factory(config: SourceConfig, position: TicketPosition) -> RecordIterator:
    cursor = Cursor(
        config.username,
        config.api_token,
        config.domain,
        start_time=position.last_modified,
        timeout=get_settings().http_timeout,
    )
    return CDCIterator(cursor, config.polling_period)


class Source(SourceConnector):
    """Streams ticket changes from the Zendesk incremental export."""

    def __init__(self, iterator_factory: Callable[[SourceConfig, TicketPosition], RecordIterator] = default_iterator_factory):
        super().__init__("zendesk-source")
        self.iterator_factory = iterator_factory
        self.config: Optional[SourceConfig] = None
        self.iterator: Optional[RecordIterator] = None

    def configure(self, cfg: Dict[str, str]) -> None:
        self.config = SourceConfig.parse(cfg)

    def open(self, position: Optional[bytes]) -> None:
        """Start polling from ``position``; empty means from the beginning."""
        if self.config is None:
            raise ZendeskConnectorError("source must be configured before it is opened")

        ticket_position = parse_position(position)
        self._close_iterator()
        self.iterator = self.iterator_factory(self.config, ticket_position)
        self.logger.set_context(domain=self.config.domain)
        self.logger.info(
            "Zendesk source opened",
            last_modified=ticket_position.last_modified.isoformat(),
            ticket_id=ticket_position.id,
        )

    def read(self) -> ChangeRecord:
        """Return the next record, or raise BackoffRetry when none is ready."""
        if self.iterator is None:
            raise ZendeskConnectorError("source is not open")

        if not self.iterator.has_next():
            raise BackoffRetry()

        return self.iterator.next()

    def ack(self, position: bytes) -> None:
        try:
            ticket_position = parse_position(position)
        except InvalidPositionError as e:
            raise InvalidPositionError(f"invalid position: {e}") from e

        self.logger.info(
            "Ack received",
            ticket_id=ticket_position.id,
            update_time=ticket_position.last_modified.isoformat(),
        )

    def teardown(self) -> None:
        self.logger.info("Shutting down zendesk client")
        self._close_iterator()
        self.logger.clear_context()

    def _close_iterator(self) -> None:
        if self.iterator is None:
            return
        self.iterator.stop()
        self.iterator.join(TEARDOWN_TIMEOUT)
        self.iterator = None
