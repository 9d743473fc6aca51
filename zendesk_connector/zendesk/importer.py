"""
Bulk ticket importer for the Zendesk destination.
"""
import json
import threading
from typing import Any, Dict, List, Optional

import requests

from zendesk_connector.interfaces.base import ChangeRecord, Writer
from zendesk_connector.utils.errors import (
    MalformedPayloadError, OperationCancelledError, RateLimitExceededError,
    UnexpectedStatusError, ZendeskAPIError
)
from zendesk_connector.utils.logging import get_logger
from zendesk_connector.zendesk.client import (
    CREATE_MANY_PATH, DEFAULT_TIMEOUT, auth_headers, base_url_for, new_session,
    parse_retry_after
)


DEFAULT_RETRY_AFTER = 60  # seconds, used when a 429 carries no usable Retry-After


def parse_records(records: List[ChangeRecord]) -> bytes:
    """Build the create_many request body from record payloads."""
    tickets: List[Dict[str, Any]] = []

    for record in records:
        try:
            ticket = json.loads(record.payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedPayloadError(f"error unmarshaling the payload into ticket type: {e}") from e

        if not isinstance(ticket, dict):
            raise MalformedPayloadError(
                f"error unmarshaling the payload into ticket type: expected an object, got {type(ticket).__name__}"
            )
        tickets.append(ticket)

    return json.dumps({'tickets': tickets}).encode('utf-8')


class BulkImporter(Writer):
    """Writes batches of tickets with the create_many import endpoint.

    A 429 response is retried after the server-provided delay, at most
    ``max_retries`` times in a row; any other response resets the count.
    """

    def __init__(self, username: str, api_token: str, domain: str, max_retries: int = 3,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT,
                 base_url: Optional[str] = None):
        self.username = username
        self.api_token = api_token
        self.base_url = base_url or base_url_for(domain)
        self.max_retries = max_retries
        self.session = new_session(session)
        self.timeout = timeout
        self.retry_count = 0
        self._stopped = threading.Event()
        self.logger = get_logger(self.__class__.__name__, base_url=self.base_url)

    @property
    def url(self) -> str:
        return f"{self.base_url}{CREATE_MANY_PATH}"

    def write(self, records: List[ChangeRecord], cancel: Optional[threading.Event] = None) -> None:
        """Submit one bulk-create request for ``records``.

        ``cancel`` interrupts a rate-limit wait; the write then raises
        OperationCancelledError.
        """
        body = parse_records(records)
        headers = {
            **auth_headers(self.username, self.api_token),
            'Content-Type': 'application/json; charset=UTF-8',
        }

        try:
            response = self.session.post(self.url, data=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ZendeskAPIError(f"unable to fetch response from zendesk server: {e}") from e

        if response.status_code == 429:
            try:
                retry_after = parse_retry_after(response)
            except ValueError:
                retry_after = DEFAULT_RETRY_AFTER

            if self.retry_count >= self.max_retries:
                raise RateLimitExceededError(self.retry_count)

            self.retry_count += 1
            self.logger.warning(
                "Rate limit exceeded, will retry after Retry-After duration",
                retry_after=retry_after,
                retry_count=self.retry_count,
            )
            self._wait(retry_after, cancel)
            return self.write(records, cancel)

        self.retry_count = 0

        if response.status_code != 200:
            raise UnexpectedStatusError(response.status_code, response.text)

        self.logger.info(f"Imported {len(records)} tickets")

    def _wait(self, seconds: float, cancel: Optional[threading.Event]) -> None:
        event = cancel if cancel is not None else self._stopped
        if event.wait(seconds):
            raise OperationCancelledError("rate-limit wait cancelled")

    def stop(self) -> None:
        self._stopped.set()
        self.session.close()
