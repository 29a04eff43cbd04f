"""Local storage for quotesync.

Provides:
- Durable storage for the quote collection and user preferences
- A volatile session cache for the last viewed quote
"""

from .persistent_store import PersistentStore, SELECTED_CATEGORY
from .session_cache import SessionCache

__all__ = ["PersistentStore", "SELECTED_CATEGORY", "SessionCache"]
