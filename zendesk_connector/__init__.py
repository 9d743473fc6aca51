"""
Zendesk ticket change-data-capture connector.
"""

__version__ = "0.1.0"
