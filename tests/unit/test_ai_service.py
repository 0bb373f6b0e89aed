"""Tests for OpenAIService.

The OpenAI client is a mock; page fetches go through an httpx
MockTransport so no network is used.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from article_manager.config import Settings
from article_manager.core.exceptions import (
    AIGenerationError,
    AIGenerationReason,
    BookRecommendationError,
    BookRecommendationReason,
)
from article_manager.domain.article import Article
from article_manager.services.ai import (
    OpenAIService,
    build_book_prompt,
    extract_page_text,
    map_openai_error,
)

ARTICLE_HTML = """
<html>
  <head><title>FastAPI入門</title><script>var x = 1;</script></head>
  <body>
    <nav>menu</nav>
    <article><h1>FastAPI入門</h1><p>FastAPIで   APIを作る。</p></article>
    <footer>copyright</footer>
  </body>
</html>
"""

# =============================================================================
# Helpers
# =============================================================================


def completion(content: str, finish_reason: str = "stop", tokens: int = 100):
    """Build an object shaped like a chat completion response."""
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                finish_reason=finish_reason,
                message=SimpleNamespace(content=content),
            )
        ],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def mock_client(response=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=error)
    client.close = AsyncMock()
    return client


def http_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def html_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text=ARTICLE_HTML)


def fake_request() -> httpx.Request:
    return httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(cls, status: int, message: str = "error", code: str | None = None):
    response = httpx.Response(status, request=fake_request())
    body = {"message": message, "code": code}
    return cls(message, response=response, body=body)


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="sk-test", recommendation_count=3)  # type: ignore[arg-type]


# =============================================================================
# HTML Cleaning Tests
# =============================================================================


class TestExtractPageText:
    """Tests for HTML to text reduction."""

    def test_prefers_article_and_drops_noise(self) -> None:
        title, text = extract_page_text(ARTICLE_HTML, 1000)
        assert title == "FastAPI入門"
        assert text == "FastAPI入門 FastAPIで APIを作る。"
        assert "menu" not in text
        assert "copyright" not in text

    def test_truncates_to_max_chars(self) -> None:
        _, text = extract_page_text("<body><p>" + "a" * 50 + "</p></body>", 10)
        assert text == "a" * 10


# =============================================================================
# Article Generation Tests
# =============================================================================


class TestGenerateFromUrl:
    """Tests for generate_from_url."""

    @pytest.mark.asyncio
    async def test_success(self, settings: Settings) -> None:
        content = json.dumps(
            {"title": "FastAPI入門", "summary": "APIの作り方", "suggestedTags": ["Python", " "]},
            ensure_ascii=False,
        )
        client = mock_client(completion(f"```json\n{content}\n```", tokens=42))
        service = OpenAIService(settings, client=client, http_client=http_client(html_handler))

        result = await service.generate_from_url("https://example.com/fastapi")

        assert result.title == "FastAPI入門"
        assert result.summary == "APIの作り方"
        assert result.suggested_tags == ["Python"]
        assert result.tokens_used == 42
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == settings.openai_model
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "FastAPIで APIを作る。" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_missing_summary_is_invalid_response(self, settings: Settings) -> None:
        client = mock_client(completion('{"title": "t"}'))
        service = OpenAIService(settings, client=client, http_client=http_client(html_handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await service.generate_from_url("https://example.com")
        assert exc_info.value.reason is AIGenerationReason.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_content_filter_finish_reason(self, settings: Settings) -> None:
        client = mock_client(completion("", finish_reason="content_filter"))
        service = OpenAIService(settings, client=client, http_client=http_client(html_handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await service.generate_from_url("https://example.com")
        assert exc_info.value.reason is AIGenerationReason.CONTENT_BLOCKED

    @pytest.mark.asyncio
    async def test_non_http_url_rejected_without_fetch(self, settings: Settings) -> None:
        client = mock_client(completion("{}"))
        service = OpenAIService(settings, client=client)

        with pytest.raises(AIGenerationError) as exc_info:
            await service.generate_from_url("ftp://example.com")
        assert exc_info.value.reason is AIGenerationReason.INVALID_URL
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "reason"),
        [
            (404, AIGenerationReason.INVALID_URL),
            (503, AIGenerationReason.NETWORK_ERROR),
        ],
    )
    async def test_page_fetch_status_errors(self, settings, status, reason) -> None:
        service = OpenAIService(
            settings,
            client=mock_client(),
            http_client=http_client(lambda request: httpx.Response(status)),
        )

        with pytest.raises(AIGenerationError) as exc_info:
            await service.generate_from_url("https://example.com")
        assert exc_info.value.reason is reason

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "reason"),
        [
            (httpx.ReadTimeout("slow"), AIGenerationReason.TIMEOUT),
            (httpx.ConnectError("refused"), AIGenerationReason.NETWORK_ERROR),
        ],
    )
    async def test_page_fetch_transport_errors(self, settings, error, reason) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        service = OpenAIService(settings, client=mock_client(), http_client=http_client(handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await service.generate_from_url("https://example.com")
        assert exc_info.value.reason is reason


# =============================================================================
# Error Mapping Tests
# =============================================================================


class TestMapOpenAIError:
    """Tests for OpenAI exception translation."""

    def test_timeout(self) -> None:
        error = map_openai_error(openai.APITimeoutError(request=fake_request()))
        assert error.reason is AIGenerationReason.TIMEOUT

    def test_connection_error(self) -> None:
        error = map_openai_error(openai.APIConnectionError(request=fake_request()))
        assert error.reason is AIGenerationReason.NETWORK_ERROR

    def test_rate_limit(self) -> None:
        error = map_openai_error(status_error(openai.RateLimitError, 429))
        assert error.reason is AIGenerationReason.API_LIMIT

    @pytest.mark.parametrize(
        ("cls", "status"),
        [(openai.AuthenticationError, 401), (openai.PermissionDeniedError, 403)],
    )
    def test_unauthorized(self, cls, status: int) -> None:
        assert map_openai_error(status_error(cls, status)).reason is (
            AIGenerationReason.UNAUTHORIZED
        )

    def test_bad_request_content_policy(self) -> None:
        exc = status_error(
            openai.BadRequestError, 400, "blocked", code="content_policy_violation"
        )
        assert map_openai_error(exc).reason is AIGenerationReason.CONTENT_BLOCKED

    def test_other_bad_request(self) -> None:
        exc = status_error(openai.BadRequestError, 400, "context too long")
        assert map_openai_error(exc).reason is AIGenerationReason.INVALID_URL

    def test_server_error(self) -> None:
        exc = status_error(openai.InternalServerError, 500)
        assert map_openai_error(exc).reason is AIGenerationReason.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_client_error_is_mapped_in_service(self, settings: Settings) -> None:
        client = mock_client(error=status_error(openai.RateLimitError, 429))
        service = OpenAIService(settings, client=client, http_client=http_client(html_handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await service.generate_from_url("https://example.com")
        assert exc_info.value.status_code == 429


# =============================================================================
# Book Recommendation Tests
# =============================================================================


class TestRecommend:
    """Tests for recommend."""

    @pytest.fixture
    def articles(self) -> list[Article]:
        return [
            Article.new(
                "Go言語入門",
                "https://example.com/go",
                "Goの基本",
                tags=["go", "backend"],
                memo="再読",
            )
        ]

    @pytest.mark.asyncio
    async def test_parses_books(self, settings: Settings, articles) -> None:
        content = json.dumps(
            {
                "books": [
                    {"title": "プログラミング言語Go", "author": "Alan Donovan", "amazonUrl": ""},
                    {"title": "  ", "author": "x"},
                    "not a dict",
                ]
            },
            ensure_ascii=False,
        )
        client = mock_client(completion(content))
        service = OpenAIService(settings, client=client)

        books = await service.recommend(articles)

        assert [b.title for b in books] == ["プログラミング言語Go", ""]
        assert books[0].author == "Alan Donovan"
        prompt = client.chat.completions.create.await_args.kwargs["messages"][1]["content"]
        assert "Go言語入門" in prompt
        assert "exactly 3 books" in prompt

    @pytest.mark.asyncio
    async def test_empty_articles(self, settings: Settings) -> None:
        service = OpenAIService(settings, client=mock_client())

        with pytest.raises(BookRecommendationError) as exc_info:
            await service.recommend([])
        assert exc_info.value.reason is BookRecommendationReason.NO_ARTICLES

    @pytest.mark.asyncio
    async def test_ai_failure_is_wrapped(self, settings: Settings, articles) -> None:
        client = mock_client(error=status_error(openai.RateLimitError, 429))
        service = OpenAIService(settings, client=client)

        with pytest.raises(BookRecommendationError) as exc_info:
            await service.recommend(articles)
        assert exc_info.value.reason is BookRecommendationReason.AI_ERROR
        assert exc_info.value.details["reason"] == "api_limit"

    @pytest.mark.asyncio
    async def test_missing_book_list(self, settings: Settings, articles) -> None:
        service = OpenAIService(settings, client=mock_client(completion('{"items": []}')))

        with pytest.raises(BookRecommendationError) as exc_info:
            await service.recommend(articles)
        assert exc_info.value.reason is BookRecommendationReason.AI_ERROR

    def test_prompt_includes_tags_and_memo(self, articles) -> None:
        prompt = build_book_prompt(articles, 5)
        assert "Tags: go, backend" in prompt
        assert "Memo: 再読" in prompt
