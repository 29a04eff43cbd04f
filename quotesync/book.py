"""The owned quote collection and its mutation API."""

import logging
import random
from pathlib import Path

from .errors import ImportRejected
from .index import CollectionIndex
from .models import ALL_CATEGORIES, Quote
from .presenter import NullPresenter, Presenter
from .storage import PersistentStore, SELECTED_CATEGORY, SessionCache
from .sync.merge import dedupe
from .sync.remote_source import PushResult, RemoteSource
from .transfer import (
    DEFAULT_EXPORT_FILENAME,
    ImportPolicy,
    export_json,
    export_to,
    parse_import,
    read_import,
)

logger = logging.getLogger(__name__)


class QuoteBook:
    """In-memory collection backed by a PersistentStore.

    Every mutation (add, replace, merge commit, import) persists the
    collection and rebuilds the category index; replace and import also
    re-render the active filtered view. Callers hold a reference to the
    book; there is no module-level collection.
    """

    def __init__(
        self,
        store: PersistentStore,
        session: SessionCache | None = None,
        remote: RemoteSource | None = None,
        presenter: Presenter | None = None,
        index: CollectionIndex | None = None,
    ):
        """Initialize the book.

        Args:
            store: Durable storage for quotes and preferences.
            session: Volatile cache for the last viewed quote.
            remote: Optional feed client; new quotes are pushed to it.
            presenter: Receiver of render and notify callbacks.
            index: Category index, created if not given.
        """
        self.store = store
        self.session = session or SessionCache()
        self.remote = remote
        self.presenter = presenter or NullPresenter()
        self.index = index or CollectionIndex()
        self._quotes: list[Quote] = []
        self._selected_category = ALL_CATEGORIES
        self._loaded = False

    @property
    def quotes(self) -> list[Quote]:
        """Copy of the current collection."""
        self._ensure_loaded()
        return list(self._quotes)

    @property
    def categories(self) -> list[str]:
        self._ensure_loaded()
        return self.index.categories

    @property
    def selected_category(self) -> str:
        self._ensure_loaded()
        return self._selected_category

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def load(self) -> Quote | None:
        """Load the collection and restore preferences and session state.

        Returns:
            The last viewed quote of this session, if any. It is also
            passed to the presenter.
        """
        self._quotes = self.store.load()
        self.index.rebuild(self._quotes)
        self._loaded = True

        saved = self.store.load_preference(SELECTED_CATEGORY)
        if saved and self.index.contains(saved):
            self._selected_category = saved
        else:
            self._selected_category = ALL_CATEGORIES

        logger.info(
            f"Loaded {len(self._quotes)} quotes, "
            f"{len(self.index.categories) - 1} categories"
        )

        last = self.session.get_last()
        if last is not None:
            self.presenter.render_quote(last)
        return last

    def _commit(self, quotes: list[Quote], render: bool = False) -> None:
        """Persist, then adopt the collection in memory."""
        self.store.save(quotes)
        self._adopt(quotes, render)

    def _adopt(self, quotes: list[Quote], render: bool = False) -> None:
        """Reindex, optionally re-rendering the active filter."""
        self._quotes = list(quotes)
        self._loaded = True
        self.index.rebuild(self._quotes)

        if not self.index.contains(self._selected_category):
            self._selected_category = ALL_CATEGORIES

        if render:
            self.presenter.render_list(self.filtered(), self._selected_category)

    # ==================== Mutations ====================

    async def add(self, text: str, category: str) -> PushResult | None:
        """Append a new quote, persist it, and push it best effort.

        Args:
            text: Quote text; surrounding whitespace is stripped.
            category: Category; surrounding whitespace is stripped.

        Returns:
            The push result, or None when no remote is configured.

        Raises:
            InvalidQuoteError: If text or category is empty.
        """
        quote = Quote(text=(text or "").strip(), category=(category or "").strip())

        self._ensure_loaded()
        self._adopt(self.store.append(quote))
        self.presenter.notify("Quote added and saved!")
        logger.info(f"Added quote in {quote.category!r}")

        if self.remote is None:
            return None

        result = await self.remote.push(quote)
        if not result.ok:
            self.presenter.notify(f"Could not upload quote to server: {result.error}")
        return result

    def replace(self, quotes: list[Quote]) -> None:
        """Overwrite the whole collection and re-render the filtered view."""
        self._commit(quotes, render=True)

    def commit_merge(self, merged: list[Quote]) -> None:
        """Commit the result of a sync merge."""
        self._commit(merged)

    def reload_from_store(self) -> list[Quote]:
        """Collection as currently persisted, falling back to defaults."""
        return self.store.load()

    # ==================== Views ====================

    def random_quote(self) -> Quote | None:
        """Pick a random quote, remember it for the session and show it."""
        self._ensure_loaded()
        if not self._quotes:
            self.presenter.notify("No quotes available.")
            return None

        quote = random.choice(self._quotes)
        self.session.set_last(quote)
        self.presenter.render_quote(quote)
        return quote

    def last_viewed(self) -> Quote | None:
        return self.session.get_last()

    def filtered(self, category: str | None = None) -> list[Quote]:
        """Quotes in ``category`` (the selected one by default)."""
        self._ensure_loaded()
        return self.index.filter(self._quotes, category or self._selected_category)

    def select_category(self, category: str) -> list[Quote]:
        """Set and persist the category filter, then render the view.

        Returns:
            The filtered quotes.
        """
        self._ensure_loaded()
        self._selected_category = category
        self.store.save_preference(SELECTED_CATEGORY, category)

        quotes = self.filtered()
        self.presenter.render_list(quotes, category)
        return quotes

    # ==================== Import / export ====================

    def export_json(self) -> str:
        return export_json(self.quotes)

    def export_to(
        self, path: str | Path | None = None, filename: str = DEFAULT_EXPORT_FILENAME
    ) -> Path:
        return export_to(self.quotes, path, filename)

    def import_json(
        self, document: str, policy: ImportPolicy = ImportPolicy.REPLACE
    ) -> int:
        """Import quotes from a JSON document.

        Args:
            document: JSON array of quote objects.
            policy: Replace the collection, or append to it (existing
                texts are kept, new ones added in document order).

        Returns:
            Number of quotes in the collection after the import.

        Raises:
            MalformedImport: If the document is not valid JSON.
            InvalidImportShape: If it is not an array of quotes.
        """
        try:
            imported = parse_import(document)
        except ImportRejected as e:
            logger.warning(f"Import rejected: {e}")
            self.presenter.notify(e.user_message)
            raise

        return self._apply_import(imported, policy)

    def import_from(
        self, path: str | Path, policy: ImportPolicy = ImportPolicy.REPLACE
    ) -> int:
        """Import quotes from a JSON file. See ``import_json``."""
        try:
            imported = read_import(path)
        except ImportRejected as e:
            logger.warning(f"Import rejected: {e}")
            self.presenter.notify(e.user_message)
            raise

        return self._apply_import(imported, policy)

    def _apply_import(self, imported: list[Quote], policy: ImportPolicy) -> int:
        self._ensure_loaded()
        if policy == ImportPolicy.APPEND:
            quotes = dedupe(self._quotes + imported)
        else:
            quotes = dedupe(imported)

        self._commit(quotes, render=True)
        self.presenter.notify("Quotes imported successfully!")
        logger.info(f"Imported {len(imported)} quotes ({policy.value})")
        return len(quotes)
