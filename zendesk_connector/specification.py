"""
Connector metadata and parameter descriptions exposed to the host.
"""
from dataclasses import dataclass, field
from typing import Dict

from zendesk_connector.config.settings import (
    DEFAULT_MAX_RETRIES, DEFAULT_POLLING_PERIOD, KEY_API_TOKEN, KEY_BUFFER_SIZE,
    KEY_DOMAIN, KEY_MAX_RETRIES, KEY_POLLING_PERIOD, KEY_USERNAME, MAX_BUFFER_SIZE
)


@dataclass
class Parameter:
    """Description of one configuration parameter."""
    default: str = ""
    required: bool = False
    description: str = ""


@dataclass
class Specification:
    """Connector identity and the parameters each side accepts."""
    name: str
    summary: str
    version: str
    author: str
    source_params: Dict[str, Parameter] = field(default_factory=dict)
    destination_params: Dict[str, Parameter] = field(default_factory=dict)


def _connection_params() -> Dict[str, Parameter]:
    return {
        KEY_DOMAIN: Parameter(
            required=True,
            description="Zendesk subdomain the organization is registered under",
        ),
        KEY_USERNAME: Parameter(
            required=True,
            description="Email of the Zendesk user the API token belongs to",
        ),
        KEY_API_TOKEN: Parameter(
            required=True,
            description="Zendesk API token",
        ),
    }


def specification() -> Specification:
    source_params = _connection_params()
    source_params[KEY_POLLING_PERIOD] = Parameter(
        default=DEFAULT_POLLING_PERIOD,
        description="Interval between two fetches of the incremental export",
    )

    destination_params = _connection_params()
    destination_params[KEY_BUFFER_SIZE] = Parameter(
        default=str(MAX_BUFFER_SIZE),
        description=f"Number of tickets written per bulk import, at most {MAX_BUFFER_SIZE}",
    )
    destination_params[KEY_MAX_RETRIES] = Parameter(
        default=str(DEFAULT_MAX_RETRIES),
        description="Retries of a rate-limited bulk import before the write fails",
    )

    return Specification(
        name="zendesk",
        summary="A Zendesk ticket source and destination connector",
        version="v0.1.0",
        author="Meroxa, Inc.",
        source_params=source_params,
        destination_params=destination_params,
    )
