"""SQLAlchemy book recommendation cache repository.

The store keeps a single current recommendation set. ``save`` deletes the
previous rows and inserts the new one inside one transaction, so concurrent
readers observe either the old set or the new one.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from article_manager.core.exceptions import RecommendationCacheNotFoundError
from article_manager.core.logging import get_logger
from article_manager.core.timeutil import ensure_utc, utcnow
from article_manager.domain.book import Book, BookRecommendationCache
from article_manager.models.book_recommendation import BookRecommendationRecord
from article_manager.repositories.base import BaseRepository

logger = get_logger(__name__)


class SQLAlchemyBookRecommendationRepository(BaseRepository[BookRecommendationRecord]):
    """Recommendation cache store backed by a relational database."""

    async def find_latest_valid(self) -> BookRecommendationCache:
        """Get the newest recommendation set that has not expired.

        Raises:
            RecommendationCacheNotFoundError: If no unexpired set exists
            DatabaseError: On driver failures
        """
        query = (
            select(BookRecommendationRecord)
            .where(BookRecommendationRecord.expires_at > utcnow())
            .order_by(
                BookRecommendationRecord.created_at.desc(),
                BookRecommendationRecord.id.desc(),
            )
            .limit(1)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise self._database_error("find_latest_valid_recommendations", e) from e

        record = result.scalar_one_or_none()
        if record is None:
            raise RecommendationCacheNotFoundError()
        return self._to_entity(record)

    async def save(self, cache: BookRecommendationCache) -> BookRecommendationCache:
        """Replace the stored recommendation set with ``cache``.

        The delete and insert are committed together; on failure the
        transaction is rolled back and the previous set stays in place.

        Returns:
            A copy of ``cache`` carrying its assigned ID

        Raises:
            DatabaseError: If the replace fails
        """
        record = BookRecommendationRecord(
            recommendations_json=[book.to_dict() for book in cache.books],
            generated_at=cache.generated_at,
            expires_at=cache.expires_at,
            created_at=utcnow(),
        )
        try:
            await self.session.execute(delete(BookRecommendationRecord))
            await self.add(record)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._database_error("save_recommendations", e) from e

        logger.debug(
            "recommendations_saved",
            cache_id=record.id,
            book_count=len(cache.books),
        )
        return BookRecommendationCache(
            id=record.id,
            books=list(cache.books),
            generated_at=cache.generated_at,
            expires_at=cache.expires_at,
        )

    @staticmethod
    def _to_entity(record: BookRecommendationRecord) -> BookRecommendationCache:
        return BookRecommendationCache(
            id=record.id,
            books=[Book.from_dict(item) for item in record.recommendations_json or []],
            generated_at=ensure_utc(record.generated_at),
            expires_at=ensure_utc(record.expires_at),
        )
