"""Volatile per-session cache for the last viewed quote."""

import json
import logging

from ..errors import InvalidQuoteError
from ..models import Quote

logger = logging.getLogger(__name__)

LAST_QUOTE_KEY = "lastQuote"


class SessionCache:
    """In-process storage that lives as long as this object.

    Records are kept as JSON strings, the same shape a browser session
    store would hold, so a new session always starts empty.
    """

    def __init__(self):
        self._records: dict[str, str] = {}

    def set_last(self, quote: Quote) -> None:
        """Remember the quote most recently shown."""
        self._records[LAST_QUOTE_KEY] = json.dumps(quote.to_dict())

    def get_last(self) -> Quote | None:
        """Get the quote most recently shown in this session, if any."""
        raw = self._records.get(LAST_QUOTE_KEY)
        if raw is None:
            return None

        try:
            return Quote.from_dict(json.loads(raw))
        except (json.JSONDecodeError, InvalidQuoteError) as e:
            logger.debug(f"Ignoring unreadable session record: {e}")
            return None

    def clear(self) -> None:
        self._records.clear()
