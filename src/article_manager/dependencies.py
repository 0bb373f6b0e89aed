"""FastAPI dependency injection container.

This module provides dependency injection functions for use with FastAPI's
Depends() pattern. Dependencies are organized by functionality and can be
overridden in tests via ``app.dependency_overrides``.

Repositories follow ``settings.repository_backend``: the SQLAlchemy stores
bind to the request session, the in-memory stores are process-wide
singletons.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from article_manager.config import RepositoryBackend, Settings
from article_manager.repositories import (
    ArticleRepository,
    BookRecommendationRepository,
    InMemoryArticleRepository,
    InMemoryBookRecommendationRepository,
    InMemoryStore,
    InMemoryTagRepository,
    SQLAlchemyArticleRepository,
    SQLAlchemyBookRecommendationRepository,
    SQLAlchemyTagRepository,
    TagRepository,
)
from article_manager.services.ai import OpenAIService, get_openai_service
from article_manager.services.article import ArticleService
from article_manager.services.article_generator import ArticleGeneratorService
from article_manager.services.google_books import (
    GoogleBooksService,
    get_google_books_service,
)
from article_manager.services.recommendation_cache import (
    BookRecommendationCacheManager,
)
from article_manager.services.tag import TagService


# ========================================
# Settings Dependencies
# ========================================
def get_settings_from_request(request: Request) -> Settings:
    """Get settings from request state (set during app creation)."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_settings_from_request)]


# ========================================
# Database Dependencies
# ========================================
async def get_db_session(settings: SettingsDep) -> AsyncGenerator[AsyncSession | None, None]:
    """Get an async database session.

    Yields a session that commits on success and rolls back on exception.
    With the in-memory backend no session is opened and None is yielded.
    """
    if settings.repository_backend == RepositoryBackend.MEMORY:
        yield None
        return

    from article_manager.core.database import get_async_session

    async for session in get_async_session():
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


SessionDep = Annotated[AsyncSession | None, Depends(get_db_session)]


# ========================================
# Repository Dependencies
# ========================================
@lru_cache
def get_memory_store() -> InMemoryStore:
    return InMemoryStore()


@lru_cache
def get_memory_article_repository() -> InMemoryArticleRepository:
    return InMemoryArticleRepository(get_memory_store())


@lru_cache
def get_memory_tag_repository() -> InMemoryTagRepository:
    return InMemoryTagRepository(get_memory_store())


@lru_cache
def get_memory_book_recommendation_repository() -> InMemoryBookRecommendationRepository:
    return InMemoryBookRecommendationRepository()


def reset_memory_repositories() -> None:
    """Drop every in-memory store (tests start from a clean slate)."""
    get_memory_store.cache_clear()
    get_memory_article_repository.cache_clear()
    get_memory_tag_repository.cache_clear()
    get_memory_book_recommendation_repository.cache_clear()


def get_article_repository(session: SessionDep) -> ArticleRepository:
    if session is None:
        return get_memory_article_repository()
    return SQLAlchemyArticleRepository(session)


def get_tag_repository(session: SessionDep) -> TagRepository:
    if session is None:
        return get_memory_tag_repository()
    return SQLAlchemyTagRepository(session)


def get_book_recommendation_repository(
    session: SessionDep,
) -> BookRecommendationRepository:
    if session is None:
        return get_memory_book_recommendation_repository()
    return SQLAlchemyBookRecommendationRepository(session)


ArticleRepositoryDep = Annotated[ArticleRepository, Depends(get_article_repository)]
TagRepositoryDep = Annotated[TagRepository, Depends(get_tag_repository)]
BookRecommendationRepositoryDep = Annotated[
    BookRecommendationRepository, Depends(get_book_recommendation_repository)
]


# ========================================
# Service Dependencies
# ========================================
def get_article_service(article_repo: ArticleRepositoryDep) -> ArticleService:
    """Get the article use-case service."""
    return ArticleService(article_repo)


def get_tag_service(tag_repo: TagRepositoryDep) -> TagService:
    """Get the tag use-case service."""
    return TagService(tag_repo)


def get_article_generator_service(
    article_repo: ArticleRepositoryDep,
    tag_repo: TagRepositoryDep,
    openai_service: Annotated[OpenAIService, Depends(get_openai_service)],
) -> ArticleGeneratorService:
    """Get the URL-to-article generator."""
    return ArticleGeneratorService(openai_service, article_repo, tag_repo)


def get_recommendation_cache_manager(
    settings: SettingsDep,
    article_repo: ArticleRepositoryDep,
    cache_repo: BookRecommendationRepositoryDep,
    openai_service: Annotated[OpenAIService, Depends(get_openai_service)],
    google_books: Annotated[GoogleBooksService, Depends(get_google_books_service)],
) -> BookRecommendationCacheManager:
    """Get the book recommendation cache manager."""
    return BookRecommendationCacheManager(
        article_repo,
        cache_repo,
        openai_service,
        google_books,
        ttl=settings.recommendation_ttl,
        persist_empty=settings.persist_empty_recommendations,
    )
