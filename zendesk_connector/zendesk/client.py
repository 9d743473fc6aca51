"""
HTTP plumbing shared by the cursor and the bulk importer.
"""
import base64
from typing import Dict, Optional

import requests


DEFAULT_TIMEOUT = 5.0  # seconds, keeps a stuck request from stalling a task
INCREMENTAL_TICKETS_PATH = "/api/v2/incremental/tickets/cursor.json"
CREATE_MANY_PATH = "/api/v2/imports/tickets/create_many"


def base_url_for(domain: str) -> str:
    return f"https://{domain}.zendesk.com"


def basic_auth(username: str, api_token: str) -> str:
    """Encode API-token credentials for the Authorization header."""
    auth = f"{username}/token:{api_token}"
    return base64.b64encode(auth.encode('utf-8')).decode('ascii')


def auth_headers(username: str, api_token: str) -> Dict[str, str]:
    return {"Authorization": f"Basic {basic_auth(username, api_token)}"}


def new_session(session: Optional[requests.Session] = None) -> requests.Session:
    """Return the given session or a fresh one."""
    return session if session is not None else requests.Session()


def parse_retry_after(response: requests.Response) -> int:
    """Read ``Retry-After`` as whole seconds; raises ValueError when unusable."""
    value = response.headers.get("Retry-After")
    if value is None:
        raise ValueError("Retry-After header is missing")
    return int(value.strip())
