"""
Exception hierarchy for the Zendesk connector.
"""
from typing import Any, Optional


class ZendeskConnectorError(Exception):
    """Base class for all connector errors."""
    pass


class ConfigError(ZendeskConnectorError):
    """Raised when a configuration value is missing or invalid."""
    pass


class InvalidPositionError(ZendeskConnectorError):
    """Raised when a non-empty position cannot be decoded."""
    pass


class ZendeskAPIError(ZendeskConnectorError):
    """Base class for failures talking to the Zendesk API."""
    pass


class UnexpectedStatusError(ZendeskAPIError):
    """Raised for any non-200 response that is not a rate limit."""

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        if body is None:
            message = f"non 200 status code received({status_code})"
        else:
            message = f"non 200 status code({status_code}) received({body})"
        super().__init__(message)


class RetryValueUnavailableError(ZendeskAPIError):
    """Raised when a 429 response carries no usable Retry-After header."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"unable to get retry value: {value!r} is not an integer")


class RateLimitExceededError(ZendeskAPIError):
    """Raised when a write is still rate limited after all retries."""

    def __init__(self, retry_count: int):
        self.retry_count = retry_count
        super().__init__(f"rate-limit exceeded, total retries: {retry_count}")


class MalformedResponseError(ZendeskAPIError):
    """Raised when a response body is not the expected JSON document."""
    pass


class MalformedTicketError(ZendeskConnectorError):
    """Raised when a ticket has an unusable id or timestamp."""
    pass


class MalformedPayloadError(ZendeskConnectorError):
    """Raised when a record payload cannot be sent as a ticket object."""
    pass


class IteratorStoppedError(ZendeskConnectorError):
    """Cause recorded when an iterator is stopped on purpose."""

    def __init__(self, message: str = "iterator stopped"):
        super().__init__(message)


class OperationCancelledError(ZendeskConnectorError):
    """Raised when a blocking wait is interrupted by cancellation."""
    pass


class BackoffRetry(ZendeskConnectorError):
    """Signal that no record is ready yet and the caller should retry later."""

    def __init__(self, message: str = "backoff retry"):
        super().__init__(message)
