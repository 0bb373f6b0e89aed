"""Tests for BookRecommendationCacheManager.

Covers the cache-hit short circuit, the no-articles path, enrichment
fallback and validation, and persistence behavior.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from article_manager.core.exceptions import (
    BookRecommendationError,
    BookRecommendationReason,
    DatabaseError,
    NoValidRecommendationsError,
    RecommendationCacheNotFoundError,
)
from article_manager.core.timeutil import utcnow
from article_manager.domain.article import Article
from article_manager.domain.book import Book, BookRecommendationCache, PurchaseLinks
from article_manager.repositories import (
    InMemoryArticleRepository,
    InMemoryBookRecommendationRepository,
)
from article_manager.services.ai import RecommendedBook
from article_manager.services.google_books import BookDetail, GoogleBooksError
from article_manager.services.recommendation_cache import BookRecommendationCacheManager

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def article_repo() -> InMemoryArticleRepository:
    return InMemoryArticleRepository()


@pytest.fixture
def cache_repo() -> InMemoryBookRecommendationRepository:
    return InMemoryBookRecommendationRepository()


@pytest.fixture
def recommender() -> MagicMock:
    mock = MagicMock()
    mock.recommend = AsyncMock(
        return_value=[
            RecommendedBook(title="リーダブルコード", author="Dustin Boswell"),
            RecommendedBook(title="Clean Architecture", author="Robert C. Martin"),
        ]
    )
    return mock


@pytest.fixture
def enricher() -> MagicMock:
    async def search_book(title: str, author: str = "") -> BookDetail:
        return BookDetail(
            title=title,
            author=author,
            isbn="4873115655",
            purchase_links=PurchaseLinks(amazon="https://www.amazon.co.jp/dp/4873115655"),
        )

    mock = MagicMock()
    mock.search_book = AsyncMock(side_effect=search_book)
    return mock


@pytest.fixture
def manager(article_repo, cache_repo, recommender, enricher) -> BookRecommendationCacheManager:
    return BookRecommendationCacheManager(article_repo, cache_repo, recommender, enricher)


async def add_article(repo: InMemoryArticleRepository) -> Article:
    return await repo.create(
        Article.new("Go言語入門", "https://example.com/go", "Goの基本", tags=["go"])
    )


# =============================================================================
# Cache Hit Tests
# =============================================================================


class TestCacheHit:
    """A valid cached set is returned without calling collaborators."""

    @pytest.mark.asyncio
    async def test_returns_cached_without_calls(
        self, manager, cache_repo, recommender, enricher
    ) -> None:
        saved = await cache_repo.save(
            BookRecommendationCache.new([Book(title="t", author="a")])
        )

        result = await manager.get_recommendations()

        assert result.id == saved.id
        assert result.books == saved.books
        recommender.recommend.assert_not_called()
        enricher.search_book.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_cache_is_regenerated(
        self, manager, article_repo, cache_repo, recommender
    ) -> None:
        past = utcnow() - timedelta(hours=25)
        await cache_repo.save(
            BookRecommendationCache.new([Book(title="old", author="a")], now=past)
        )
        await add_article(article_repo)

        result = await manager.get_recommendations()

        recommender.recommend.assert_awaited_once()
        assert [b.title for b in result.books] == ["リーダブルコード", "Clean Architecture"]

    @pytest.mark.asyncio
    async def test_lookup_database_error_is_treated_as_miss(
        self, article_repo, recommender, enricher
    ) -> None:
        cache_repo = MagicMock()
        cache_repo.find_latest_valid = AsyncMock(side_effect=DatabaseError(operation="find"))
        cache_repo.save = AsyncMock(side_effect=lambda cache: cache)
        await add_article(article_repo)
        manager = BookRecommendationCacheManager(
            article_repo, cache_repo, recommender, enricher
        )

        result = await manager.get_recommendations()

        assert len(result.books) == 2
        cache_repo.save.assert_awaited_once()


# =============================================================================
# No Articles Tests
# =============================================================================


class TestNoArticles:
    """With no articles the recommender is never called."""

    @pytest.mark.asyncio
    async def test_empty_result_not_persisted_by_default(
        self, manager, cache_repo, recommender
    ) -> None:
        result = await manager.get_recommendations()

        assert result.books == []
        assert result.id == 0
        assert result.is_valid()
        recommender.recommend.assert_not_called()
        with pytest.raises(RecommendationCacheNotFoundError):
            await cache_repo.find_latest_valid()

    @pytest.mark.asyncio
    async def test_empty_result_persisted_when_enabled(
        self, article_repo, cache_repo, recommender, enricher
    ) -> None:
        manager = BookRecommendationCacheManager(
            article_repo, cache_repo, recommender, enricher, persist_empty=True
        )

        result = await manager.get_recommendations()

        assert result.books == []
        assert result.is_persisted
        assert (await cache_repo.find_latest_valid()).id == result.id
        recommender.recommend.assert_not_called()


# =============================================================================
# Generation Tests
# =============================================================================


class TestGeneration:
    """Cache miss with articles: recommend, enrich, validate, persist."""

    @pytest.mark.asyncio
    async def test_generates_enriches_and_saves_once(
        self, article_repo, recommender, enricher
    ) -> None:
        cache_repo = InMemoryBookRecommendationRepository()
        cache_repo.save = AsyncMock(wraps=cache_repo.save)
        await add_article(article_repo)
        manager = BookRecommendationCacheManager(
            article_repo, cache_repo, recommender, enricher, ttl=timedelta(hours=24)
        )

        result = await manager.get_recommendations()

        assert result.is_persisted
        assert result.expires_at - result.generated_at == timedelta(hours=24)
        assert all(b.isbn == "4873115655" for b in result.books)
        assert enricher.search_book.await_count == 2
        cache_repo.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_call_hits_cache(self, manager, article_repo, recommender) -> None:
        await add_article(article_repo)

        first = await manager.get_recommendations()
        second = await manager.get_recommendations()

        assert second.id == first.id
        recommender.recommend.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_enrichment_failure_falls_back_to_recommender_data(
        self, manager, article_repo, enricher
    ) -> None:
        await add_article(article_repo)
        original = enricher.search_book.side_effect

        async def flaky(title: str, author: str = "") -> BookDetail:
            if title == "Clean Architecture":
                raise GoogleBooksError("rate limit exceeded", status_code=429)
            return await original(title, author)

        enricher.search_book.side_effect = flaky

        result = await manager.get_recommendations()

        assert len(result.books) == 2
        fallback = result.books[1]
        assert fallback.title == "Clean Architecture"
        assert fallback.author == "Robert C. Martin"
        assert fallback.isbn == ""
        assert fallback.purchase_links == PurchaseLinks()

    @pytest.mark.asyncio
    async def test_incomplete_books_are_dropped(
        self, manager, article_repo, recommender
    ) -> None:
        await add_article(article_repo)
        recommender.recommend.return_value = [
            RecommendedBook(title="良い本", author="著者"),
            RecommendedBook(title="著者なし", author=""),
        ]

        result = await manager.get_recommendations()

        assert [b.title for b in result.books] == ["良い本"]

    @pytest.mark.asyncio
    async def test_no_valid_books_raises_and_persists_nothing(
        self, manager, article_repo, cache_repo, recommender
    ) -> None:
        await add_article(article_repo)
        recommender.recommend.return_value = [RecommendedBook(title="t", author="")]

        with pytest.raises(NoValidRecommendationsError):
            await manager.get_recommendations()

        with pytest.raises(RecommendationCacheNotFoundError):
            await cache_repo.find_latest_valid()

    @pytest.mark.asyncio
    async def test_recommender_error_propagates(
        self, manager, article_repo, recommender, enricher
    ) -> None:
        await add_article(article_repo)
        recommender.recommend.side_effect = BookRecommendationError(
            BookRecommendationReason.AI_ERROR
        )

        with pytest.raises(BookRecommendationError) as exc_info:
            await manager.get_recommendations()

        assert exc_info.value.reason is BookRecommendationReason.AI_ERROR
        enricher.search_book.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_failure_propagates(self, article_repo, recommender, enricher) -> None:
        cache_repo = InMemoryBookRecommendationRepository()
        cache_repo.save = AsyncMock(side_effect=DatabaseError(operation="save"))
        await add_article(article_repo)
        manager = BookRecommendationCacheManager(
            article_repo, cache_repo, recommender, enricher
        )

        with pytest.raises(DatabaseError):
            await manager.get_recommendations()

    @pytest.mark.asyncio
    async def test_cancellation_is_not_swallowed(
        self, manager, article_repo, enricher
    ) -> None:
        await add_article(article_repo)
        enricher.search_book.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await manager.get_recommendations()
