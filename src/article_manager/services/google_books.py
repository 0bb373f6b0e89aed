"""Google Books API client service.

Resolves an AI-suggested (title, author) pair to canonical bibliographic data
and builds Japanese store purchase links from the ISBNs.

See: https://developers.google.com/books/docs/v1/using
"""

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from article_manager.config import Settings, get_settings
from article_manager.core.exceptions import (
    BookRecommendationError,
    BookRecommendationReason,
)
from article_manager.domain.book import PurchaseLinks
from article_manager.services.cache import CacheService

logger = structlog.get_logger(__name__)

AMAZON_URL = "https://www.amazon.co.jp/dp/{isbn}"
RAKUTEN_URL = "https://books.rakuten.co.jp/search?sitem={isbn}"

RETRYABLE_STATUS_CODES = frozenset({429, 500, 503})


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


@dataclass
class BookDetail:
    """Canonical bibliographic detail for one book."""

    title: str
    author: str = ""
    isbn: str = ""
    isbn13: str = ""
    purchase_links: PurchaseLinks = field(default_factory=PurchaseLinks)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict for caching."""
        return {
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "isbn13": self.isbn13,
            "purchase_links": self.purchase_links.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BookDetail":
        """Create from cached dict."""
        return cls(
            title=data["title"],
            author=data.get("author", ""),
            isbn=data.get("isbn", ""),
            isbn13=data.get("isbn13", ""),
            purchase_links=PurchaseLinks.from_dict(data.get("purchase_links") or {}),
        )


class GoogleBooksError(BookRecommendationError):
    """Google Books API failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(
            BookRecommendationReason.BOOKS_API_ERROR,
            message=message,
            details={"status_code": status_code} if status_code else None,
        )
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        # status_code is None for transport failures
        return self.status_code is None or self.status_code in RETRYABLE_STATUS_CODES


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, GoogleBooksError) and exc.is_retryable


# -----------------------------------------------------------------------------
# Google Books Service
# -----------------------------------------------------------------------------


class GoogleBooksService:
    """Async client for the Google Books volumes API.

    Usage:
        ```python
        service = GoogleBooksService(cache_service)
        detail = await service.search_book("リーダブルコード", "Dustin Boswell")
        ```
    """

    def __init__(
        self,
        cache: CacheService | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            cache: CacheService for lookups, or None to disable caching
            settings: Application settings (defaults to cached settings)
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.cache = cache
        self._settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def _user_agent(self) -> str:
        return f"{self._settings.app_name}/{self._settings.app_version}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._settings.google_books_base_url,
                timeout=self._settings.google_books_timeout,
                headers={"User-Agent": self._user_agent},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def search_book(self, title: str, author: str = "") -> BookDetail:
        """Look up a book by title and author.

        Returns:
            The first match, or a detail carrying only the input title and
            author when nothing matches

        Raises:
            BookRecommendationError: ``books_api_error`` on API failures
                that persist after retries
        """
        if not title:
            raise GoogleBooksError("title is required")

        cache_key = CacheService.book_key(title, author)
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached:
                logger.debug("book_cache_hit", cache_key=cache_key)
                return BookDetail.from_dict(cached)

        detail = await self._search_with_retry(title, author)

        if self.cache is not None:
            await self.cache.set(cache_key, detail.to_dict())
        return detail

    # -------------------------------------------------------------------------
    # Private Methods - API Fetching
    # -------------------------------------------------------------------------

    async def _search_with_retry(self, title: str, author: str) -> BookDetail:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self._settings.google_books_max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.google_books_retry_wait, max=8
            ),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                return await self._fetch_volume(title, author)
        raise GoogleBooksError("no attempt was made")  # pragma: no cover

    async def _fetch_volume(self, title: str, author: str) -> BookDetail:
        client = await self._get_client()

        query = f"{title} {author}" if author else title
        params: dict[str, Any] = {"q": query, "maxResults": 1}
        api_key = self._settings.google_books_api_key.get_secret_value()
        if api_key:
            params["key"] = api_key

        try:
            response = await client.get("/volumes", params=params)
        except httpx.RequestError as e:
            logger.warning("google_books_request_error", error=str(e), title=title)
            raise GoogleBooksError(f"request failed: {e}") from e

        if response.status_code != 200:
            raise self._status_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise GoogleBooksError("failed to parse response") from e

        return self._parse_volume(data, title, author)

    def _status_error(self, response: httpx.Response) -> GoogleBooksError:
        status = response.status_code
        if status == 400:
            try:
                detail = response.json().get("error", {}).get("message", "")
            except ValueError:
                detail = ""
            message = f"bad request: {detail}"
        elif status in (401, 403):
            message = "invalid API key"
        elif status == 429:
            message = "rate limit exceeded"
        elif status in (500, 503):
            message = f"API error: status={status}"
        else:
            message = f"unexpected error: status={status}"

        logger.warning("google_books_request_failed", status_code=status)
        return GoogleBooksError(message, status_code=status)

    # -------------------------------------------------------------------------
    # Private Methods - Response Parsing
    # -------------------------------------------------------------------------

    def _parse_volume(self, data: dict[str, Any], title: str, author: str) -> BookDetail:
        items = data.get("items") or []
        if not items:
            logger.debug("google_books_no_match", title=title, author=author)
            return BookDetail(title=title, author=author)

        volume = items[0].get("volumeInfo") or {}

        isbn10 = ""
        isbn13 = ""
        for identifier in volume.get("industryIdentifiers") or []:
            value = str(identifier.get("identifier", "")).replace("-", "")
            if identifier.get("type") == "ISBN_10":
                isbn10 = value
            elif identifier.get("type") == "ISBN_13":
                isbn13 = value

        authors = volume.get("authors") or []
        return BookDetail(
            title=volume.get("title") or title,
            author=", ".join(authors) if authors else author,
            isbn=isbn10 or isbn13,
            isbn13=isbn13,
            purchase_links=self._purchase_links(isbn10, isbn13),
        )

    @staticmethod
    def _purchase_links(isbn10: str, isbn13: str) -> PurchaseLinks:
        primary = isbn10 or isbn13
        return PurchaseLinks(
            amazon=AMAZON_URL.format(isbn=primary) if primary else "",
            rakuten=RAKUTEN_URL.format(isbn=isbn13) if isbn13 else "",
        )


# -----------------------------------------------------------------------------
# FastAPI Dependency Injection
# -----------------------------------------------------------------------------

_google_books_service: GoogleBooksService | None = None


def set_google_books_service(service: GoogleBooksService | None) -> None:
    """Set the global Google Books service during app startup."""
    global _google_books_service
    _google_books_service = service


def get_google_books_service() -> GoogleBooksService:
    """FastAPI dependency for GoogleBooksService."""
    if _google_books_service is None:
        raise RuntimeError(
            "Google Books service not initialized. Call set_google_books_service first."
        )
    return _google_books_service
