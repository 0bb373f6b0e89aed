"""Repository package for Article Manager.

Each store has a SQLAlchemy implementation and an in-memory one. Both
satisfy the protocols below, which is all the services depend on.
"""

from typing import Protocol

from article_manager.domain.article import Article
from article_manager.domain.book import BookRecommendationCache
from article_manager.domain.tag import Tag
from article_manager.repositories.article import SQLAlchemyArticleRepository
from article_manager.repositories.base import BaseRepository
from article_manager.repositories.book_recommendation import (
    SQLAlchemyBookRecommendationRepository,
)
from article_manager.repositories.memory import (
    InMemoryArticleRepository,
    InMemoryBookRecommendationRepository,
    InMemoryStore,
    InMemoryTagRepository,
)
from article_manager.repositories.tag import SQLAlchemyTagRepository


class ArticleRepository(Protocol):
    async def create(self, article: Article) -> Article: ...

    async def find_by_id(self, article_id: int) -> Article: ...

    async def find_all(self) -> list[Article]: ...

    async def update(self, article: Article) -> Article: ...

    async def delete(self, article_id: int) -> None: ...

    async def search(self, keyword: str | None) -> list[Article]: ...


class TagRepository(Protocol):
    async def create(self, tag: Tag) -> Tag: ...

    async def find_by_id(self, tag_id: int) -> Tag: ...

    async def find_by_name(self, name: str) -> Tag: ...

    async def find_all(self) -> list[Tag]: ...

    async def update(self, tag: Tag) -> Tag: ...

    async def delete(self, tag_id: int) -> None: ...


class BookRecommendationRepository(Protocol):
    async def find_latest_valid(self) -> BookRecommendationCache: ...

    async def save(self, cache: BookRecommendationCache) -> BookRecommendationCache: ...


__all__ = [
    # Protocols
    "ArticleRepository",
    "TagRepository",
    "BookRecommendationRepository",
    # Base
    "BaseRepository",
    # SQLAlchemy
    "SQLAlchemyArticleRepository",
    "SQLAlchemyTagRepository",
    "SQLAlchemyBookRecommendationRepository",
    # In-memory
    "InMemoryArticleRepository",
    "InMemoryTagRepository",
    "InMemoryBookRecommendationRepository",
    "InMemoryStore",
]
