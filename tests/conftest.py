"""Pytest configuration and fixtures for Article Manager tests.

This module provides reusable fixtures for:
- Settings overrides
- Async test client on the in-memory backend
- Test database session (in-memory SQLite)
- Mocked external services
"""

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from article_manager.config import Settings
from article_manager.core.database import build_engine, create_all
from article_manager.dependencies import reset_memory_repositories
from article_manager.main import create_app
from article_manager.services.ai import GeneratedArticle, RecommendedBook, get_openai_service
from article_manager.services.google_books import BookDetail, get_google_books_service

# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test-specific settings.

    The memory backend keeps API tests free of a database server; Redis
    caching is disabled so nothing tries to connect.
    """
    return Settings(
        app_env="development",  # type: ignore[arg-type]
        debug=True,
        log_level="DEBUG",  # type: ignore[arg-type]
        log_format="console",  # type: ignore[arg-type]
        repository_backend="memory",  # type: ignore[arg-type]
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="redis://localhost:6379/15",
        bibliographic_cache_enabled=False,
        openai_api_key="sk-test-key",  # type: ignore[arg-type]
        google_books_retry_wait=0,
        display_timezone="Asia/Tokyo",
    )


# =============================================================================
# Mock Service Fixtures
# =============================================================================


@pytest.fixture
def generated_article() -> GeneratedArticle:
    """Return a typical AI generation result."""
    return GeneratedArticle(
        title="FastAPIで作るREST API",
        summary="FastAPIとSQLAlchemyでREST APIを構築する手順を解説する記事。",
        suggested_tags=["Python", "FastAPI"],
        source_url="https://example.com/fastapi",
        tokens_used=321,
    )


@pytest.fixture
def mock_openai_service(generated_article: GeneratedArticle) -> MagicMock:
    """Create a mock OpenAI service.

    Use this to avoid making real API calls in tests.
    """
    mock = MagicMock()
    mock.generate_from_url = AsyncMock(return_value=generated_article)
    mock.recommend = AsyncMock(
        return_value=[
            RecommendedBook(title="リーダブルコード", author="Dustin Boswell"),
            RecommendedBook(title="Effective Python", author="Brett Slatkin"),
        ]
    )
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_google_books_service() -> MagicMock:
    """Create a mock Google Books service that echoes its input with an ISBN."""

    async def search_book(title: str, author: str = "") -> BookDetail:
        return BookDetail(title=title, author=author, isbn="4873115655")

    mock = MagicMock()
    mock.search_book = AsyncMock(side_effect=search_book)
    mock.close = AsyncMock()
    return mock


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(
    test_settings: Settings,
    mock_openai_service: MagicMock,
    mock_google_books_service: MagicMock,
) -> FastAPI:
    """Create a test FastAPI application with fresh in-memory stores."""
    reset_memory_repositories()
    app = create_app(settings=test_settings)
    app.dependency_overrides[get_openai_service] = lambda: mock_openai_service
    app.dependency_overrides[get_google_books_service] = lambda: mock_google_books_service
    yield app
    app.dependency_overrides.clear()
    reset_memory_repositories()


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing.

    This client makes requests to the test app without starting a server.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create an isolated in-memory SQLite database and yield a session."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_all(engine)
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    async with factory() as session:
        yield session

    await engine.dispose()


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_article_data() -> dict[str, Any]:
    """Return a valid article request body."""
    return {
        "title": "asyncio入門",
        "url": "https://example.com/asyncio",
        "summary": "Pythonのasyncioでイベントループとタスクを扱う方法をまとめた記事",
        "tags": ["python", "asyncio"],
        "memo": "あとで読む",
    }
