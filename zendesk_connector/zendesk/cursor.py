"""
Cursor over the Zendesk incremental ticket export.

Each call to ``fetch_records`` performs at most one request against the
cursor-paginated endpoint and converts the returned tickets into change
records. Pagination state (``after_url``), the time low-water mark and the
rate-limit cool-down live on the cursor and are only touched by its owner.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from zendesk_connector.interfaces.base import ChangeRecord, TicketCursor
from zendesk_connector.source.position import TicketPosition, is_zero_time, parse_timestamp
from zendesk_connector.utils.errors import (
    MalformedResponseError, MalformedTicketError, RetryValueUnavailableError,
    UnexpectedStatusError, ZendeskAPIError
)
from zendesk_connector.utils.logging import get_logger
from zendesk_connector.zendesk.client import (
    DEFAULT_TIMEOUT, INCREMENTAL_TICKETS_PATH, auth_headers, base_url_for,
    new_session, parse_retry_after
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Cursor(TicketCursor):
    """HTTP-backed ticket cursor."""

    def __init__(self, username: str, api_token: str, domain: str, start_time: datetime,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT,
                 base_url: Optional[str] = None, clock: Optional[Callable[[], datetime]] = None):
        self.username = username
        self.api_token = api_token
        self.base_url = base_url or base_url_for(domain)
        self.session = new_session(session)
        self.timeout = timeout
        self.last_modified_time = start_time
        self.after_url: Optional[str] = None
        self.next_run: Optional[datetime] = None
        self._clock = clock or _utcnow
        self.logger = get_logger(self.__class__.__name__, base_url=self.base_url)

    def fetch_records(self) -> Optional[List[ChangeRecord]]:
        """Export the next page of tickets.

        Returns ``None`` without calling the API while a rate-limit cool-down
        is pending, and after receiving a 429.
        """
        if self.next_run is not None and self.next_run > self._clock():
            return None

        url = self.after_url or self._start_url()

        try:
            response = self.session.get(
                url,
                headers=auth_headers(self.username, self.api_token),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ZendeskAPIError(f"could not get the zendesk response: {e}") from e

        if response.status_code == 429:
            try:
                retry_after = parse_retry_after(response)
            except ValueError as e:
                raise RetryValueUnavailableError(response.headers.get("Retry-After")) from e

            # Skip hitting the API until the cool-down passes
            self.next_run = self._clock() + timedelta(seconds=retry_after)
            self.logger.warning("Rate limited by zendesk, deferring next fetch", retry_after=retry_after)
            return None

        if response.status_code != 200:
            raise UnexpectedStatusError(response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"error unmarshaling the response body: {e}") from e

        if not isinstance(body, dict):
            raise MalformedResponseError("error unmarshaling the response body: expected an object")

        tickets = body.get('tickets') or []
        if not isinstance(tickets, list):
            raise MalformedResponseError("error unmarshaling the response body: tickets is not a list")

        if body.get('after_url'):
            self.after_url = body['after_url']

        records = self.to_records(tickets)
        self.logger.debug(
            f"Fetched {len(records)} tickets",
            end_of_stream=bool(body.get('end_of_stream')),
        )
        return records

    def to_records(self, tickets: List[Dict[str, Any]]) -> List[ChangeRecord]:
        """Convert raw tickets into change records.

        Some tickets arrive with ``updated_at`` set to the epoch. Those get the
        running low-water mark instead (or ``created_at`` when it is already
        past the mark), so emitted positions never move backward and a resumed
        pipeline does not replay the whole export.
        """
        records = []
        last_valid_modified_time = self.last_modified_time

        for ticket in tickets:
            if not isinstance(ticket, dict):
                raise MalformedTicketError(f"invalid ticket encountered: {ticket!r}")

            ticket_id = _parse_id(ticket.get('id'))
            updated_at = _parse_ticket_time(ticket, 'updated_at')
            created_at = _parse_ticket_time(ticket, 'created_at')

            if is_zero_time(updated_at):
                if is_zero_time(created_at) or created_at < last_valid_modified_time:
                    updated_at = last_valid_modified_time
                else:
                    updated_at = created_at

            if updated_at > last_valid_modified_time:
                last_valid_modified_time = updated_at

            position = TicketPosition(last_modified=updated_at, id=ticket_id)

            metadata = {}
            if ticket.get('status') is not None:
                metadata['status'] = str(ticket['status'])

            records.append(ChangeRecord(
                key=_format_id(ticket_id),
                payload=json.dumps(ticket).encode('utf-8'),
                created_at=created_at,
                position=position.to_record_position(),
                metadata=metadata,
            ))

        return records

    def update_last_modified(self, last_modified: datetime) -> None:
        if last_modified > self.last_modified_time:
            self.last_modified_time = last_modified

    def close(self) -> None:
        self.session.close()

    def _start_url(self) -> str:
        # One extra second so the boundary ticket already emitted is not fetched again
        start_time = int((self.last_modified_time + timedelta(seconds=1)).timestamp())
        return f"{self.base_url}{INCREMENTAL_TICKETS_PATH}?start_time={start_time}"


def _parse_id(value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        raise MalformedTicketError(f"invalid type of id encountered: {type(value).__name__}")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise MalformedTicketError(f"invalid id encountered: {value!r}") from None
        return int(number) if number.is_integer() else number
    raise MalformedTicketError(f"invalid type of id encountered: {type(value).__name__}")


def _format_id(ticket_id: Union[int, float]) -> str:
    if float(ticket_id).is_integer():
        return str(int(ticket_id))
    return str(ticket_id)


def _parse_ticket_time(ticket: Dict[str, Any], field_name: str) -> datetime:
    try:
        return parse_timestamp(ticket.get(field_name))
    except ValueError as e:
        raise MalformedTicketError(f"invalid time in {field_name} field: {e}") from e
