"""
Zendesk destination: buffered bulk ticket imports.
"""

from .destination import Destination, default_writer_factory

__all__ = [
    'Destination',
    'default_writer_factory',
]
