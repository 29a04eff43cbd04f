"""Quote data model and JSON (de)serialization."""

import json
from dataclasses import dataclass
from typing import Any

from .errors import InvalidQuoteError

# Category filter value meaning "no filter"
ALL_CATEGORIES = "all"

# Category assigned to every quote fetched from the remote feed
SERVER_CATEGORY = "Server"


@dataclass(frozen=True)
class Quote:
    """A single quote. Identity for merging is the exact ``text``."""

    text: str
    category: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text:
            raise InvalidQuoteError("Quote text must be a non-empty string")
        if not isinstance(self.category, str) or not self.category:
            raise InvalidQuoteError("Quote category must be a non-empty string")

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {"text": self.text, "category": self.category}

    @classmethod
    def from_dict(cls, data: Any) -> "Quote":
        """Create from dictionary.

        Raises:
            InvalidQuoteError: If ``data`` is not a mapping with non-empty
                string ``text`` and ``category`` fields.
        """
        if not isinstance(data, dict):
            raise InvalidQuoteError(f"Expected an object, got {type(data).__name__}")
        return cls(text=data.get("text"), category=data.get("category"))


DEFAULT_QUOTES: tuple[Quote, ...] = (
    Quote(
        text="The only limit to our realization of tomorrow is our doubts of today.",
        category="Motivation",
    ),
    Quote(
        text="Life is what happens when you're busy making other plans.",
        category="Life",
    ),
)


def default_quotes() -> list[Quote]:
    """Return a fresh list holding the seed collection."""
    return list(DEFAULT_QUOTES)


def quotes_to_json(quotes: list[Quote], indent: int | None = None) -> str:
    """Serialize a collection as a JSON array of quote objects."""
    return json.dumps([q.to_dict() for q in quotes], indent=indent, ensure_ascii=False)


def quotes_from_json(text: str) -> list[Quote]:
    """Parse a JSON array of quote objects.

    Raises:
        json.JSONDecodeError: If ``text`` is not valid JSON.
        InvalidQuoteError: If the payload is not an array of quotes.
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise InvalidQuoteError(f"Expected a JSON array, got {type(data).__name__}")
    return [Quote.from_dict(item) for item in data]
