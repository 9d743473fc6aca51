"""
Zendesk source: resumable positions and the polling CDC iterator.

The ``Source`` connector itself lives in ``zendesk_connector.source.source``.
"""

from .position import TicketPosition, parse_position, EPOCH
from .tomb import Tomb, Channel, TombDying
from .iterator import CDCIterator

__all__ = [
    'TicketPosition',
    'parse_position',
    'EPOCH',
    'Tomb',
    'Channel',
    'TombDying',
    'CDCIterator',
]
