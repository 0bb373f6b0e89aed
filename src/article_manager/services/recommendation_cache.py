"""Book recommendation cache manager.

Serves the current recommendation set, regenerating it on a miss:

    cache lookup -> articles -> AI recommender -> Google Books enrichment
    -> validation -> persist

A valid cached set short-circuits everything after the lookup. Enrichment
is best effort per book; everything else propagates its typed error.
"""

import asyncio
from collections.abc import Sequence
from datetime import timedelta
from typing import Any, Protocol

import structlog

from article_manager.core.exceptions import (
    DatabaseError,
    NoValidRecommendationsError,
    NotFoundError,
)
from article_manager.domain.article import Article
from article_manager.domain.book import DEFAULT_TTL, Book, BookRecommendationCache
from article_manager.repositories import ArticleRepository, BookRecommendationRepository
from article_manager.services.ai import RecommendedBook
from article_manager.services.google_books import BookDetail


class BookRecommender(Protocol):
    async def recommend(self, articles: Sequence[Article]) -> list[RecommendedBook]: ...


class BookEnricher(Protocol):
    async def search_book(self, title: str, author: str = "") -> BookDetail: ...


class BookRecommendationCacheManager:
    """Produces the current book recommendations, cached for a fixed TTL.

    Usage:
        ```python
        manager = BookRecommendationCacheManager(
            article_repo, cache_repo, openai_service, google_books_service
        )
        cache = await manager.get_recommendations()
        ```
    """

    def __init__(
        self,
        article_repo: ArticleRepository,
        cache_repo: BookRecommendationRepository,
        recommender: BookRecommender,
        enricher: BookEnricher,
        *,
        ttl: timedelta = DEFAULT_TTL,
        persist_empty: bool = False,
        logger: Any = None,
    ) -> None:
        """Initialize the manager.

        Args:
            article_repo: Source of the saved articles
            cache_repo: Store for the recommendation set
            recommender: AI book recommender
            enricher: Bibliographic lookup used to canonicalize each book
            ttl: Lifetime of a newly generated set
            persist_empty: Also persist the empty set built when there are
                no articles
            logger: Structured logger (defaults to this module's logger)
        """
        self.article_repo = article_repo
        self.cache_repo = cache_repo
        self.recommender = recommender
        self.enricher = enricher
        self.ttl = ttl
        self.persist_empty = persist_empty
        self.logger = logger or structlog.get_logger(__name__)

    async def get_recommendations(self) -> BookRecommendationCache:
        """Return a valid recommendation set, generating one if needed.

        Raises:
            DatabaseError: If articles cannot be read or the new set cannot
                be saved
            BookRecommendationError: If the recommender fails
            AIGenerationError: If the recommender surfaces a provider error
            NoValidRecommendationsError: If no recommended book has both a
                title and an author
        """
        cached = await self._find_cached()
        if cached is not None:
            self.logger.debug("recommendation_cache_hit", cache_id=cached.id)
            return cached

        self.logger.info("recommendation_cache_miss")
        articles = await self.article_repo.find_all()

        if not articles:
            empty = BookRecommendationCache.empty(ttl=self.ttl)
            if self.persist_empty:
                empty = await self.cache_repo.save(empty)
            self.logger.info("recommendations_skipped_no_articles", persisted=self.persist_empty)
            return empty

        candidates = await self.recommender.recommend(articles)
        books = await asyncio.gather(*(self._enrich(c) for c in candidates))

        valid = [book for book in books if book.is_complete]
        if not valid:
            self.logger.warning(
                "no_valid_recommendations", candidate_count=len(candidates)
            )
            raise NoValidRecommendationsError(candidate_count=len(candidates))

        cache = BookRecommendationCache.new(valid, ttl=self.ttl)
        saved = await self.cache_repo.save(cache)
        self.logger.info(
            "recommendations_generated",
            cache_id=saved.id,
            article_count=len(articles),
            candidate_count=len(candidates),
            book_count=len(saved.books),
        )
        return saved

    async def _find_cached(self) -> BookRecommendationCache | None:
        try:
            cache = await self.cache_repo.find_latest_valid()
        except NotFoundError:
            return None
        except DatabaseError as e:
            self.logger.warning("recommendation_cache_lookup_failed", error=e.message)
            return None
        return cache if cache.is_valid() else None

    async def _enrich(self, candidate: RecommendedBook) -> Book:
        """Resolve one candidate, falling back to the recommender's data."""
        try:
            detail = await self.enricher.search_book(candidate.title, candidate.author)
        except Exception as e:
            self.logger.warning(
                "enrichment_failed",
                title=candidate.title,
                author=candidate.author,
                error=str(e),
            )
            return Book(title=candidate.title, author=candidate.author)

        return Book(
            title=detail.title,
            author=detail.author,
            isbn=detail.isbn,
            purchase_links=detail.purchase_links,
        )
