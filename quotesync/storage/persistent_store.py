"""Durable SQLite key/value storage for the quote collection and preferences."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import CorruptPersistedState, InvalidQuoteError
from ..models import Quote, default_quotes, quotes_from_json, quotes_to_json

logger = logging.getLogger(__name__)

# Record holding the serialized collection
QUOTES_KEY = "quotes"

# Preference records are stored as "pref:<name>"
PREFERENCE_PREFIX = "pref:"

# Preference holding the last selected category filter
SELECTED_CATEGORY = "selectedCategory"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class PersistentStore:
    """Key/value store that survives process restarts.

    The collection is kept as one JSON record. A missing or unreadable
    record never reaches the caller as an error: ``load()`` falls back to
    the seed collection instead.
    """

    def __init__(self, db_path: str | Path):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self._in_memory = str(db_path) == ":memory:"
        self.db_path = Path(db_path) if self._in_memory else Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._conn is not None:
            return

        if not self._in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.executescript(SCHEMA)
        self._conn.commit()

        logger.info(f"PersistentStore connected to {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def _ensure_connected(self) -> sqlite3.Connection:
        if self._conn is None:
            self.connect()
        return self._conn

    def _get(self, key: str) -> str | None:
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else None

    def _put(self, key: str, value: str) -> None:
        conn = self._ensure_connected()
        # Commits on success, rolls back on error
        with conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat()),
            )

    # ==================== Collection ====================

    def load_raw(self) -> list[Quote] | None:
        """Load the persisted collection without falling back.

        Returns:
            The stored quotes, or None when no record exists.

        Raises:
            CorruptPersistedState: If the record cannot be decoded.
        """
        raw = self._get(QUOTES_KEY)
        if raw is None:
            return None

        try:
            return quotes_from_json(raw)
        except (json.JSONDecodeError, InvalidQuoteError) as e:
            raise CorruptPersistedState(f"Stored collection is unreadable: {e}") from e

    def load(self) -> list[Quote]:
        """Load the persisted collection.

        Returns:
            The stored quotes, or the seed collection when the record is
            missing or corrupt.
        """
        try:
            quotes = self.load_raw()
        except CorruptPersistedState as e:
            logger.warning(f"{e}; falling back to default quotes")
            return default_quotes()

        if quotes is None:
            logger.debug("No stored collection, using default quotes")
            return default_quotes()

        return quotes

    def save(self, quotes: list[Quote]) -> None:
        """Overwrite the persisted collection.

        Args:
            quotes: Collection to store.
        """
        self._put(QUOTES_KEY, quotes_to_json(quotes))
        logger.debug(f"Saved {len(quotes)} quotes")

    def append(self, quote: Quote) -> list[Quote]:
        """Add one quote to the end of the persisted collection.

        Returns:
            The collection as stored after the append.
        """
        quotes = self.load() + [quote]
        self.save(quotes)
        return quotes

    # ==================== Preferences ====================

    def load_preference(self, key: str) -> str | None:
        """Get a stored preference value, or None if never set."""
        return self._get(f"{PREFERENCE_PREFIX}{key}")

    def save_preference(self, key: str, value: str) -> None:
        """Store a preference value."""
        self._put(f"{PREFERENCE_PREFIX}{key}", value)

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with record and quote counts.
        """
        conn = self._ensure_connected()

        stats: dict[str, Any] = {"db_path": str(self.db_path)}
        stats["records"] = conn.execute("SELECT COUNT(*) FROM kv_store").fetchone()[0]

        try:
            stored = self.load_raw()
            stats["quotes"] = len(stored) if stored is not None else 0
            stats["corrupt"] = False
        except CorruptPersistedState:
            stats["quotes"] = 0
            stats["corrupt"] = True

        if not self._in_memory and self.db_path.exists():
            stats["db_size_mb"] = round(self.db_path.stat().st_size / (1024 * 1024), 2)

        return stats
