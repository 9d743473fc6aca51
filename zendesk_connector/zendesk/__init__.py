"""
HTTP clients for the Zendesk ticket APIs.
"""

from .client import basic_auth
from .cursor import Cursor
from .importer import BulkImporter, DEFAULT_RETRY_AFTER

__all__ = [
    'basic_auth',
    'Cursor',
    'BulkImporter',
    'DEFAULT_RETRY_AFTER',
]
