# drainr/models/__init__.py

from .base import db

from .quote import Quote, QUOTE_STATUSES
from .quote_video import QuoteVideo

__all__ = [
    'db',
    'Quote',
    'QuoteVideo',
    'QUOTE_STATUSES',
]
