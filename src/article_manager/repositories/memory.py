"""In-memory repositories.

Used by tests and by ``REPOSITORY_BACKEND=memory``. Articles and tags live in
one ``InMemoryStore`` so that tag changes reach the articles carrying them,
the same way the join table does for the SQL repositories. Each store keeps
records in dicts keyed by ID plus monotonically increasing counters, all
guarded by a single ``asyncio.Lock``. Records are deep-copied on the way in
and on the way out, so callers never share state with the store.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime

from article_manager.core.exceptions import (
    ArticleNotFoundError,
    RecommendationCacheNotFoundError,
    TagAlreadyExistsError,
    TagNotFoundError,
)
from article_manager.domain.article import Article
from article_manager.domain.book import BookRecommendationCache
from article_manager.domain.search import newest_first, search_articles
from article_manager.domain.tag import Tag


class InMemoryStore:
    """Articles and tags shared by the in-memory article and tag repositories."""

    def __init__(self) -> None:
        self.articles: dict[int, Article] = {}
        self.tags: dict[int, Tag] = {}
        self.lock = asyncio.Lock()
        self._next_article_id = 1
        self._next_tag_id = 1

    def next_article_id(self) -> int:
        article_id = self._next_article_id
        self._next_article_id += 1
        return article_id

    def next_tag_id(self) -> int:
        tag_id = self._next_tag_id
        self._next_tag_id += 1
        return tag_id

    def tag_named(self, name: str) -> Tag | None:
        for stored in self.tags.values():
            if stored.name == name:
                return stored
        return None

    def register_tags(self, names: list[str], now: datetime) -> None:
        """Create a tag record for every name not stored yet."""
        for name in names:
            if self.tag_named(name) is None:
                tag = Tag(name=name, id=self.next_tag_id(), created_at=now, updated_at=now)
                self.tags[tag.id] = tag

    def rename_on_articles(self, old: str, new: str) -> None:
        for article in self.articles.values():
            article.tags = [new if name == old else name for name in article.tags]

    def detach_from_articles(self, name: str) -> None:
        for article in self.articles.values():
            article.tags = [t for t in article.tags if t != name]


class InMemoryArticleRepository:
    """Article store held in process memory."""

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    async def create(self, article: Article) -> Article:
        async with self._store.lock:
            stored = copy.deepcopy(article)
            stored.id = self._store.next_article_id()
            self._store.register_tags(stored.tags, stored.updated_at)
            self._store.articles[stored.id] = stored
            return copy.deepcopy(stored)

    async def find_by_id(self, article_id: int) -> Article:
        async with self._store.lock:
            stored = self._store.articles.get(article_id)
            if stored is None:
                raise ArticleNotFoundError(article_id=article_id)
            return copy.deepcopy(stored)

    async def find_all(self) -> list[Article]:
        async with self._store.lock:
            return [copy.deepcopy(a) for a in newest_first(self._store.articles.values())]

    async def update(self, article: Article) -> Article:
        async with self._store.lock:
            if article.id not in self._store.articles:
                raise ArticleNotFoundError(article_id=article.id)
            stored = copy.deepcopy(article)
            self._store.register_tags(stored.tags, stored.updated_at)
            self._store.articles[stored.id] = stored
            return copy.deepcopy(stored)

    async def delete(self, article_id: int) -> None:
        async with self._store.lock:
            if self._store.articles.pop(article_id, None) is None:
                raise ArticleNotFoundError(article_id=article_id)

    async def search(self, keyword: str | None) -> list[Article]:
        async with self._store.lock:
            return [
                copy.deepcopy(a)
                for a in search_articles(self._store.articles.values(), keyword)
            ]


class InMemoryTagRepository:
    """Tag store held in process memory. Names are unique."""

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    async def create(self, tag: Tag) -> Tag:
        async with self._store.lock:
            self._ensure_name_available(tag.name)
            stored = copy.deepcopy(tag)
            stored.id = self._store.next_tag_id()
            self._store.tags[stored.id] = stored
            return copy.deepcopy(stored)

    async def find_by_id(self, tag_id: int) -> Tag:
        async with self._store.lock:
            stored = self._store.tags.get(tag_id)
            if stored is None:
                raise TagNotFoundError(tag_id=tag_id)
            return copy.deepcopy(stored)

    async def find_by_name(self, name: str) -> Tag:
        async with self._store.lock:
            stored = self._store.tag_named(name)
            if stored is None:
                raise TagNotFoundError(name=name)
            return copy.deepcopy(stored)

    async def find_all(self) -> list[Tag]:
        async with self._store.lock:
            return [
                copy.deepcopy(t)
                for t in sorted(self._store.tags.values(), key=lambda t: t.name)
            ]

    async def update(self, tag: Tag) -> Tag:
        async with self._store.lock:
            current = self._store.tags.get(tag.id)
            if current is None:
                raise TagNotFoundError(tag_id=tag.id)
            self._ensure_name_available(tag.name, exclude_id=tag.id)
            if current.name != tag.name:
                self._store.rename_on_articles(current.name, tag.name)
            stored = copy.deepcopy(tag)
            self._store.tags[stored.id] = stored
            return copy.deepcopy(stored)

    async def delete(self, tag_id: int) -> None:
        async with self._store.lock:
            stored = self._store.tags.pop(tag_id, None)
            if stored is None:
                raise TagNotFoundError(tag_id=tag_id)
            self._store.detach_from_articles(stored.name)

    def _ensure_name_available(self, name: str, exclude_id: int | None = None) -> None:
        for stored in self._store.tags.values():
            if stored.name == name and stored.id != exclude_id:
                raise TagAlreadyExistsError(name=name)


class InMemoryBookRecommendationRepository:
    """Recommendation cache store with a single replaceable slot."""

    def __init__(self) -> None:
        self._current: BookRecommendationCache | None = None
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def find_latest_valid(self) -> BookRecommendationCache:
        async with self._lock:
            if self._current is None or not self._current.is_valid():
                raise RecommendationCacheNotFoundError()
            return copy.deepcopy(self._current)

    async def save(self, cache: BookRecommendationCache) -> BookRecommendationCache:
        async with self._lock:
            stored = copy.deepcopy(cache)
            stored.id = self._next_id
            self._next_id += 1
            self._current = stored
            return copy.deepcopy(stored)
