"""SQLAlchemy article repository.

Articles are stored in ``articles`` and linked to tags through
``article_tags``. Tag names passed in on create/update are resolved to tag
rows, creating missing tags on the fly, so callers only deal with names.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from article_manager.core.exceptions import ArticleNotFoundError
from article_manager.core.timeutil import ensure_utc
from article_manager.domain.article import Article
from article_manager.domain.search import tokenize_keyword
from article_manager.models.article import ArticleRecord, ArticleTagRecord
from article_manager.models.tag import TagRecord
from article_manager.repositories.base import BaseRepository

LIKE_ESCAPE = "\\"


def escape_like(token: str) -> str:
    """Escape LIKE wildcards so the token is matched literally."""
    return (
        token.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class SQLAlchemyArticleRepository(BaseRepository[ArticleRecord]):
    """Article store backed by a relational database."""

    async def create(self, article: Article) -> Article:
        """Persist a new article and return it with its assigned ID."""
        try:
            tags = await self._resolve_tags(article.tags, article.created_at)
            record = ArticleRecord(
                title=article.title,
                url=article.url,
                summary=article.summary,
                memo=article.memo,
                created_at=article.created_at,
                updated_at=article.updated_at,
            )
            record.tag_links = [
                ArticleTagRecord(tag=tag, position=position)
                for position, tag in enumerate(tags)
            ]
            await self.add(record)
        except SQLAlchemyError as e:
            raise self._database_error("create_article", e) from e
        return self._to_entity(record)

    async def find_by_id(self, article_id: int) -> Article:
        """Get an article by ID.

        Raises:
            ArticleNotFoundError: If no article has this ID
        """
        return self._to_entity(await self._get_record(article_id))

    async def find_all(self) -> list[Article]:
        """Get all articles, newest first."""
        return await self._select_articles()

    async def update(self, article: Article) -> Article:
        """Write an already-validated article back to the store.

        Raises:
            ArticleNotFoundError: If the article no longer exists
        """
        record = await self._get_record(article.id)
        try:
            tags = await self._resolve_tags(article.tags, article.updated_at)
            current = {link.tag_id: link for link in record.tag_links}
            links: list[ArticleTagRecord] = []
            for position, tag in enumerate(tags):
                link = current.get(tag.id)
                if link is None:
                    link = ArticleTagRecord(tag=tag, position=position)
                else:
                    link.position = position
                links.append(link)

            record.title = article.title
            record.url = article.url
            record.summary = article.summary
            record.memo = article.memo
            record.updated_at = article.updated_at
            record.tag_links = links
            await self.save_changes(record)
        except SQLAlchemyError as e:
            raise self._database_error("update_article", e) from e
        return self._to_entity(record)

    async def delete(self, article_id: int) -> None:
        """Delete an article and its tag links.

        Raises:
            ArticleNotFoundError: If no article has this ID
        """
        record = await self._get_record(article_id)
        try:
            await self.hard_delete(record)
        except SQLAlchemyError as e:
            raise self._database_error("delete_article", e) from e

    async def search(self, keyword: str | None) -> list[Article]:
        """Find articles whose title or summary contains every token.

        An empty or whitespace-only keyword returns every article.
        """
        tokens = tokenize_keyword(keyword)
        conditions: list[ColumnElement[bool]] = []
        for token in tokens:
            pattern = f"%{escape_like(token)}%"
            conditions.append(
                or_(
                    ArticleRecord.title.ilike(pattern, escape=LIKE_ESCAPE),
                    ArticleRecord.summary.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        return await self._select_articles(*conditions)

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    async def _get_record(self, article_id: int) -> ArticleRecord:
        query = (
            select(ArticleRecord)
            .where(ArticleRecord.id == article_id)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(query)
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._database_error("find_article", e) from e
        if record is None:
            raise ArticleNotFoundError(article_id=article_id)
        return record

    async def _select_articles(self, *conditions: ColumnElement[bool]) -> list[Article]:
        # Reload tag links that may have changed underneath loaded records
        query = (
            select(ArticleRecord)
            .order_by(ArticleRecord.created_at.desc(), ArticleRecord.id.desc())
            .execution_options(populate_existing=True)
        )
        if conditions:
            query = query.where(and_(*conditions))
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise self._database_error("list_articles", e) from e
        return [self._to_entity(record) for record in result.scalars().all()]

    async def _resolve_tags(self, names: list[str], now: datetime) -> list[TagRecord]:
        """Map tag names to tag rows, inserting the ones that do not exist."""
        if not names:
            return []

        result = await self.session.execute(
            select(TagRecord).where(TagRecord.name.in_(names))
        )
        by_name = {tag.name: tag for tag in result.scalars().all()}

        missing = [
            TagRecord(name=name, created_at=now, updated_at=now)
            for name in names
            if name not in by_name
        ]
        if missing:
            self.session.add_all(missing)
            await self.session.flush()
            by_name.update({tag.name: tag for tag in missing})

        return [by_name[name] for name in names]

    @staticmethod
    def _to_entity(record: ArticleRecord) -> Article:
        return Article(
            id=record.id,
            title=record.title,
            url=record.url,
            summary=record.summary,
            tags=record.tag_names,
            memo=record.memo or "",
            created_at=ensure_utc(record.created_at),
            updated_at=ensure_utc(record.updated_at),
        )
