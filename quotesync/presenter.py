"""Presentation callbacks the core reports to."""

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from .models import Quote

logger = logging.getLogger(__name__)


class Presenter(ABC):
    """Abstract base for whatever displays quotes to the user."""

    @abstractmethod
    def render_quote(self, quote: Quote) -> None:
        """Display a single quote."""
        pass

    @abstractmethod
    def render_list(self, quotes: list[Quote], category: str) -> None:
        """Display a filtered list.

        Args:
            quotes: Quotes matching ``category``.
            category: Active category filter ("all" for none).
        """
        pass

    @abstractmethod
    def notify(self, message: str) -> None:
        """Show a short status message."""
        pass


class NullPresenter(Presenter):
    """Presenter that only logs, used when nothing is attached."""

    def render_quote(self, quote: Quote) -> None:
        logger.debug(f"render_quote: {quote.text[:40]!r}")

    def render_list(self, quotes: list[Quote], category: str) -> None:
        logger.debug(f"render_list: {len(quotes)} quotes in {category!r}")

    def notify(self, message: str) -> None:
        logger.info(message)


class ConsolePresenter(Presenter):
    """Plain-text presenter for the command line."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def render_quote(self, quote: Quote) -> None:
        print(f'"{quote.text}"', file=self.stream)
        print(f"Category: {quote.category}", file=self.stream)

    def render_list(self, quotes: list[Quote], category: str) -> None:
        if not quotes:
            print(f"No quotes in category {category!r}", file=self.stream)
            return
        for quote in quotes:
            print(f'"{quote.text}" ({quote.category})', file=self.stream)

    def notify(self, message: str) -> None:
        print(message, file=self.stream)
