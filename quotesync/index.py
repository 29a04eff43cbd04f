"""Category index and filtered views over a collection."""

from .models import ALL_CATEGORIES, Quote


class CollectionIndex:
    """Distinct categories of a collection, with "all" first."""

    def __init__(self):
        self._categories: list[str] = [ALL_CATEGORIES]

    @property
    def categories(self) -> list[str]:
        """Categories as of the last rebuild, "all" sentinel first."""
        return list(self._categories)

    def rebuild(self, quotes: list[Quote]) -> list[str]:
        """Recompute the category set.

        Args:
            quotes: Current collection.

        Returns:
            "all" followed by each distinct category in order of first
            occurrence.
        """
        categories = [ALL_CATEGORIES]
        seen = {ALL_CATEGORIES}
        for quote in quotes:
            if quote.category not in seen:
                seen.add(quote.category)
                categories.append(quote.category)

        self._categories = categories
        return self.categories

    def contains(self, category: str) -> bool:
        return category in self._categories

    @staticmethod
    def filter(quotes: list[Quote], category: str) -> list[Quote]:
        """Quotes in ``category``, original order; "all" returns everything."""
        if category == ALL_CATEGORIES:
            return list(quotes)
        return [q for q in quotes if q.category == category]
