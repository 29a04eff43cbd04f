"""HTTP client for the remote quote feed."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import InvalidQuoteError, PushFailed, RemoteUnavailable
from ..models import Quote, SERVER_CATEGORY

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://jsonplaceholder.typicode.com/posts"


@dataclass
class PushResult:
    """Outcome of uploading one quote: an ack or a failure."""

    quote: Quote
    ok: bool
    status_code: int | None = None
    error: str | None = None


class RemoteSource:
    """Client for the remote feed.

    Fetched items are narrowed into ``Quote`` objects here, so nothing
    past this boundary sees the feed's raw JSON.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 10.0,
        fetch_limit: int = 5,
    ):
        """Initialize the remote source.

        Args:
            endpoint: Collection URL used for both GET and POST.
            timeout: Request timeout in seconds.
            fetch_limit: Maximum number of remote items kept per fetch.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.fetch_limit = fetch_limit
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        """Check whether the feed answers a GET with a success status."""
        try:
            client = await self._get_client()
            response = await client.get(self.endpoint)
            return response.is_success
        except Exception as e:
            logger.debug(f"Health check failed: {e}")
            return False

    async def fetch_all(self) -> list[Quote]:
        """Fetch the remote collection.

        Returns:
            Up to ``fetch_limit`` quotes, each tagged with the server
            category, in feed order.

        Raises:
            RemoteUnavailable: On network errors, non-2xx responses, or a
                body that is not a JSON array.
        """
        client = await self._get_client()

        try:
            response = await client.get(self.endpoint)
        except httpx.HTTPError as e:
            raise RemoteUnavailable(
                f"Request to {self.endpoint} failed: {e}", endpoint=self.endpoint
            ) from e

        if not response.is_success:
            raise RemoteUnavailable(
                f"HTTP {response.status_code} from {self.endpoint}",
                status_code=response.status_code,
                endpoint=self.endpoint,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteUnavailable(
                f"Invalid JSON from {self.endpoint}: {e}",
                status_code=response.status_code,
                endpoint=self.endpoint,
            ) from e

        if not isinstance(data, list):
            raise RemoteUnavailable(
                f"Expected a JSON array from {self.endpoint}, got {type(data).__name__}",
                status_code=response.status_code,
                endpoint=self.endpoint,
            )

        quotes = []
        for item in data[: self.fetch_limit]:
            quote = self._to_quote(item)
            if quote is not None:
                quotes.append(quote)

        logger.debug(f"Fetched {len(quotes)} remote quotes")
        return quotes

    @staticmethod
    def _to_quote(item: Any) -> Quote | None:
        """Map one feed item to a quote, or None if it has no usable title."""
        if not isinstance(item, dict):
            logger.debug(f"Skipping non-object feed item: {item!r}")
            return None

        try:
            return Quote(text=item.get("title"), category=SERVER_CATEGORY)
        except InvalidQuoteError:
            logger.debug(f"Skipping feed item without a title: {item!r}")
            return None

    async def _post(self, quote: Quote) -> httpx.Response:
        """POST one quote; raises PushFailed on any failure."""
        client = await self._get_client()

        try:
            response = await client.post(
                self.endpoint,
                json={"title": quote.text, "body": quote.category},
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise PushFailed(
                f"Request to {self.endpoint} failed: {e}", endpoint=self.endpoint
            ) from e

        if not response.is_success:
            raise PushFailed(
                f"HTTP {response.status_code} from {self.endpoint}",
                status_code=response.status_code,
                endpoint=self.endpoint,
            )

        return response

    async def push(self, quote: Quote) -> PushResult:
        """Upload one quote, best effort.

        Never raises; failures are reported in the returned result and are
        not retried.
        """
        try:
            response = await self._post(quote)
        except PushFailed as e:
            logger.warning(f"Push failed for quote {quote.text[:40]!r}: {e}")
            return PushResult(quote=quote, ok=False, status_code=e.status_code, error=str(e))

        logger.debug(f"Pushed quote {quote.text[:40]!r} ({response.status_code})")
        return PushResult(quote=quote, ok=True, status_code=response.status_code)
