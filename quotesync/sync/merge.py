"""Deterministic reconciliation of remote and local collections.

Quotes are keyed by exact ``text``. On a collision the remote copy wins,
category included.
"""

from ..models import Quote


def dedupe(quotes: list[Quote]) -> list[Quote]:
    """Drop repeated texts, keeping the first occurrence of each."""
    seen: set[str] = set()
    result = []
    for quote in quotes:
        if quote.text in seen:
            continue
        seen.add(quote.text)
        result.append(quote)
    return result


def local_only(remote: list[Quote], local: list[Quote]) -> list[Quote]:
    """Local quotes whose text does not appear in ``remote``, in local order."""
    remote_texts = {q.text for q in remote}
    return dedupe([q for q in local if q.text not in remote_texts])


def merge(remote: list[Quote], local: list[Quote]) -> list[Quote]:
    """Merge a remote and a local collection, remote wins.

    Args:
        remote: Collection fetched from the feed.
        local: Collection held locally.

    Returns:
        All remote quotes in remote order, followed by every local quote
        whose text the remote does not have, in local order. No two
        entries share a text.
    """
    return dedupe(remote) + local_only(remote, local)
