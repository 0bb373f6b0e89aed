"""OpenAI-backed article generation and book recommendation.

Two capabilities share one ``AsyncOpenAI`` client:

- ``generate_from_url``: fetch a page, clean it down to readable text and ask
  the model for a title, a summary and suggested tags.
- ``recommend``: ask the model for books matching the saved articles.

Provider failures are mapped onto ``AIGenerationError`` reasons so callers
never see OpenAI or httpx exception types. Transient OpenAI failures are
retried by the client itself (``max_retries``).
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import openai
import structlog
from bs4 import BeautifulSoup
from openai import AsyncOpenAI

from article_manager.config import Settings, get_settings
from article_manager.core.exceptions import (
    AIGenerationError,
    AIGenerationReason,
    BookRecommendationError,
    BookRecommendationReason,
)
from article_manager.domain.article import Article
from article_manager.services.json_extraction import extract_json

logger = structlog.get_logger(__name__)


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


@dataclass
class GeneratedArticle:
    """Article metadata produced by the model for a URL."""

    title: str
    summary: str
    suggested_tags: list[str]
    source_url: str
    tokens_used: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class RecommendedBook:
    """A book candidate as returned by the model (unverified)."""

    title: str
    author: str = ""
    amazon_url: str = ""
    rakuten_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecommendedBook":
        return cls(
            title=str(data.get("title") or "").strip(),
            author=str(data.get("author") or "").strip(),
            amazon_url=str(data.get("amazonUrl") or ""),
            rakuten_url=str(data.get("rakutenUrl") or ""),
        )


# -----------------------------------------------------------------------------
# Prompts
# -----------------------------------------------------------------------------

ARTICLE_SYSTEM_PROMPT = (
    "You catalogue web articles for a personal reading list. "
    "Always answer with a single JSON object and nothing else."
)

BOOK_SYSTEM_PROMPT = (
    "You recommend real, currently available books published in Japanese. "
    "Always answer with a single JSON object and nothing else."
)


def build_article_prompt(url: str, page_title: str, page_text: str) -> str:
    return (
        "Analyse the article below and produce metadata for it.\n\n"
        f"URL: {url}\n"
        f"Page title: {page_title or '(none)'}\n\n"
        "Rules:\n"
        "- Write every field in Japanese (translate English articles).\n"
        "- title: the article's title, at most 255 characters.\n"
        "- summary: the core of the article in at most 200 Japanese characters "
        "(never more than 1000 characters).\n"
        "- suggestedTags: 3 to 5 specific, searchable tags of at most 50 "
        "characters each; include the technologies used for technical articles.\n\n"
        'Respond exactly as: {"title": "...", "summary": "...", '
        '"suggestedTags": ["...", "..."]}\n\n'
        "Article text:\n"
        f"{page_text}"
    )


def build_book_prompt(articles: Sequence[Article], count: int) -> str:
    lines = ["Saved articles:", ""]
    for index, article in enumerate(articles, start=1):
        lines.append(f"{index}. Title: {article.title}")
        lines.append(f"   Summary: {article.summary}")
        if article.tags:
            lines.append(f"   Tags: {', '.join(article.tags)}")
        if article.memo:
            lines.append(f"   Memo: {article.memo}")
        lines.append("")

    lines.extend(
        [
            f"Recommend exactly {count} books that match the interests shown by "
            "these articles.",
            "Rules:",
            "- Only books that exist and are published in Japanese by Japanese "
            "publishers (translations are fine).",
            "- Titles in Japanese, authors with their full official names.",
            "- Prefer practical technical, business and professional books.",
            "- amazonUrl: https://www.amazon.co.jp/dp/<ASIN> when you are sure "
            "of the ASIN, otherwise an empty string.",
            "- rakutenUrl: https://books.rakuten.co.jp/search?sitem=<title>.",
            "",
            'Respond exactly as: {"books": [{"title": "...", "author": "...", '
            '"amazonUrl": "...", "rakutenUrl": "..."}]}',
        ]
    )
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# HTML cleaning
# -----------------------------------------------------------------------------

_NOISE_TAGS = ("script", "style", "nav", "footer", "header", "aside", "noscript", "form")


def extract_page_text(html: str, max_chars: int) -> tuple[str, str]:
    """Reduce an HTML page to its title and main readable text.

    Returns:
        Tuple of (page title, whitespace-collapsed text truncated to
        ``max_chars``)
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    for element in soup(list(_NOISE_TAGS)):
        element.decompose()

    main = soup.find("article") or soup.find("main") or soup.body or soup
    text = " ".join(main.get_text(separator=" ").split())
    return title, text[:max_chars]


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------

_BLOCKED_MARKERS = ("content_policy", "content_filter", "safety")


def map_openai_error(exc: openai.OpenAIError) -> AIGenerationError:
    """Translate an OpenAI SDK exception into an ``AIGenerationError``."""
    # APITimeoutError subclasses APIConnectionError, so it is checked first
    if isinstance(exc, openai.APITimeoutError):
        reason = AIGenerationReason.TIMEOUT
        message = "AI request timed out"
    elif isinstance(exc, openai.APIConnectionError):
        reason = AIGenerationReason.NETWORK_ERROR
        message = "failed to connect to AI provider"
    elif isinstance(exc, openai.RateLimitError):
        reason = AIGenerationReason.API_LIMIT
        message = "AI API rate limit exceeded"
    elif isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        reason = AIGenerationReason.UNAUTHORIZED
        message = "AI API key is invalid or lacks permission"
    elif isinstance(exc, openai.BadRequestError):
        marker = f"{getattr(exc, 'code', '') or ''} {exc.message}".lower()
        if any(m in marker for m in _BLOCKED_MARKERS):
            reason = AIGenerationReason.CONTENT_BLOCKED
            message = "content was blocked by the AI provider"
        else:
            reason = AIGenerationReason.INVALID_URL
            message = "AI provider rejected the request"
    else:
        reason = AIGenerationReason.NETWORK_ERROR
        message = "AI provider error"

    return AIGenerationError(reason, message=message, details={"error": str(exc)})


# -----------------------------------------------------------------------------
# OpenAI Service
# -----------------------------------------------------------------------------


class OpenAIService:
    """Article metadata generator and book recommender backed by OpenAI.

    Usage:
        ```python
        service = OpenAIService()
        generated = await service.generate_from_url("https://example.com/post")
        books = await service.recommend(articles)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncOpenAI | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Application settings (defaults to cached settings)
            client: Preconfigured OpenAI client (tests inject a mock)
            http_client: HTTP client used to fetch article pages
        """
        self._settings = settings or get_settings()
        self._client = client or AsyncOpenAI(
            api_key=self._settings.openai_api_key.get_secret_value() or None,
            timeout=float(self._settings.openai_timeout),
            max_retries=self._settings.openai_max_retries,
        )
        self._http_client = http_client

    @property
    def _user_agent(self) -> str:
        return f"{self._settings.app_name}/{self._settings.app_version}"

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the page-fetching HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self._settings.page_fetch_timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP and OpenAI clients."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None
        await self._client.close()

    # -------------------------------------------------------------------------
    # Article generation
    # -------------------------------------------------------------------------

    async def generate_from_url(self, url: str) -> GeneratedArticle:
        """Generate a title, summary and tags for the page at ``url``.

        Raises:
            AIGenerationError: On fetch, provider or parsing failures
        """
        if not url.startswith(("http://", "https://")):
            raise AIGenerationError(
                AIGenerationReason.INVALID_URL,
                message="url must start with http:// or https://",
            )

        html = await self._fetch_page(url)
        page_title, page_text = extract_page_text(
            html, self._settings.page_content_max_chars
        )
        if not page_text:
            raise AIGenerationError(
                AIGenerationReason.INVALID_URL,
                message="no readable content found at url",
            )

        content, tokens = await self._complete(
            ARTICLE_SYSTEM_PROMPT, build_article_prompt(url, page_title, page_text)
        )
        data = extract_json(content)

        title = str(data.get("title") or "").strip()
        summary = str(data.get("summary") or "").strip()
        if not title or not summary:
            raise AIGenerationError(
                AIGenerationReason.INVALID_RESPONSE,
                message="AI response is missing title or summary",
            )

        raw_tags = data.get("suggestedTags") or []
        if not isinstance(raw_tags, list):
            raw_tags = []
        tags = [str(tag).strip() for tag in raw_tags if str(tag).strip()]

        logger.info(
            "article_metadata_generated",
            url=url,
            tag_count=len(tags),
            tokens_used=tokens,
        )
        return GeneratedArticle(
            title=title,
            summary=summary,
            suggested_tags=tags,
            source_url=url,
            tokens_used=tokens,
        )

    # -------------------------------------------------------------------------
    # Book recommendation
    # -------------------------------------------------------------------------

    async def recommend(self, articles: Sequence[Article]) -> list[RecommendedBook]:
        """Ask the model for books matching the saved articles.

        Raises:
            BookRecommendationError: ``no_articles`` for empty input,
                ``ai_error`` when the model call or parsing fails
        """
        if not articles:
            raise BookRecommendationError(
                BookRecommendationReason.NO_ARTICLES,
                message="no articles to base recommendations on",
            )

        prompt = build_book_prompt(articles, self._settings.recommendation_count)
        try:
            content, tokens = await self._complete(BOOK_SYSTEM_PROMPT, prompt)
            data = extract_json(content)
        except AIGenerationError as e:
            logger.error("book_recommendation_ai_failed", reason=e.reason.value)
            raise BookRecommendationError(
                BookRecommendationReason.AI_ERROR,
                message="failed to generate book recommendations",
                details={"reason": e.reason.value, "error": e.message},
            ) from e

        raw_books = data.get("books")
        if not isinstance(raw_books, list):
            raise BookRecommendationError(
                BookRecommendationReason.AI_ERROR,
                message="AI response does not contain a book list",
            )

        books = [RecommendedBook.from_dict(item) for item in raw_books if isinstance(item, dict)]
        logger.info(
            "books_recommended",
            article_count=len(articles),
            book_count=len(books),
            tokens_used=tokens,
        )
        return books

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    async def _fetch_page(self, url: str) -> str:
        client = await self._get_http_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("article_page_fetch_failed", url=url, status_code=status)
            reason = (
                AIGenerationReason.INVALID_URL
                if status < 500
                else AIGenerationReason.NETWORK_ERROR
            )
            raise AIGenerationError(
                reason, message=f"failed to fetch url: status={status}"
            ) from e
        except httpx.TimeoutException as e:
            logger.warning("article_page_fetch_timeout", url=url)
            raise AIGenerationError(
                AIGenerationReason.TIMEOUT, message="fetching url timed out"
            ) from e
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            raise AIGenerationError(
                AIGenerationReason.INVALID_URL, message=f"invalid url: {e}"
            ) from e
        except httpx.RequestError as e:
            logger.warning("article_page_fetch_error", url=url, error=str(e))
            raise AIGenerationError(
                AIGenerationReason.NETWORK_ERROR, message=f"request failed: {e}"
            ) from e
        return response.text

    async def _complete(self, system_prompt: str, prompt: str) -> tuple[str, int]:
        """Run one chat completion and return (content, total tokens)."""
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self._settings.openai_temperature,
                max_tokens=self._settings.openai_max_tokens,
            )
        except openai.OpenAIError as e:
            error = map_openai_error(e)
            logger.error(
                "openai_request_failed",
                reason=error.reason.value,
                error=str(e),
            )
            raise error from e

        if not response.choices:
            raise AIGenerationError(
                AIGenerationReason.INVALID_RESPONSE, message="AI returned no choices"
            )

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise AIGenerationError(
                AIGenerationReason.CONTENT_BLOCKED,
                message="content was blocked by the AI provider",
            )

        tokens = response.usage.total_tokens if response.usage else 0
        return choice.message.content or "", tokens


# -----------------------------------------------------------------------------
# FastAPI Dependency Injection
# -----------------------------------------------------------------------------

_openai_service: OpenAIService | None = None


def set_openai_service(service: OpenAIService | None) -> None:
    """Set the global OpenAI service during app startup."""
    global _openai_service
    _openai_service = service


def get_openai_service() -> OpenAIService:
    """FastAPI dependency for OpenAIService."""
    if _openai_service is None:
        raise RuntimeError(
            "OpenAI service not initialized. Call set_openai_service first."
        )
    return _openai_service
