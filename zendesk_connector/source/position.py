"""
Resumable ticket position and its byte encoding.

A position is the last-modified time of a ticket plus its id, since several
tickets can share the same update time. Positions are handed to the host as
opaque bytes holding ``{"LastModified": "<RFC3339>", "ID": <number>}``.
"""
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from zendesk_connector.utils.errors import InvalidPositionError


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Go serializes its zero time as 0001-01-01T00:00:00Z
GO_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def is_zero_time(value: datetime) -> bool:
    """True for the epoch and for Go's zero time; other old dates are real."""
    return value == EPOCH or value == GO_ZERO_TIME


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 timestamp into an aware UTC datetime."""
    if not isinstance(value, str):
        raise ValueError(f"expected an RFC3339 string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no UTC offset")
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as RFC3339 in UTC."""
    text = value.astimezone(timezone.utc).isoformat()
    return text.replace('+00:00', 'Z')


@dataclass(frozen=True, order=True)
class TicketPosition:
    """Position of a ticket in the change stream, ordered by (last_modified, id)."""
    last_modified: datetime = EPOCH
    id: float = 0

    def to_record_position(self) -> bytes:
        """Encode the position for the host runtime."""
        ticket_id: Union[int, float] = self.id
        if float(ticket_id).is_integer():
            ticket_id = int(ticket_id)

        return json.dumps({
            'LastModified': format_timestamp(self.last_modified),
            'ID': ticket_id,
        }).encode('utf-8')


def parse_position(data: Optional[bytes]) -> TicketPosition:
    """Decode a position; empty input is the start-from-beginning position."""
    if not data:
        return TicketPosition()

    try:
        raw = json.loads(data)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidPositionError(f"couldn't parse the ticket position: {e}") from e

    if not isinstance(raw, dict):
        raise InvalidPositionError(f"couldn't parse the ticket position: expected an object, got {raw!r}")

    ticket_id = raw.get('ID', 0)
    if isinstance(ticket_id, bool) or not isinstance(ticket_id, (int, float)):
        raise InvalidPositionError(f"couldn't parse the ticket position: invalid ID {ticket_id!r}")

    last_modified = EPOCH
    if raw.get('LastModified') is not None:
        try:
            last_modified = parse_timestamp(raw['LastModified'])
        except ValueError as e:
            raise InvalidPositionError(f"couldn't parse the ticket position: {e}") from e

    # Go's zero time serializes as year 1; both mean "from the beginning"
    if is_zero_time(last_modified):
        last_modified = EPOCH

    return TicketPosition(last_modified=last_modified, id=ticket_id)
