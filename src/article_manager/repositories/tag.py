"""SQLAlchemy tag repository.

Tag names are unique. A duplicate name is reported as
``TagAlreadyExistsError`` whether it is caught by the pre-check or by the
database's unique constraint.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from article_manager.core.exceptions import TagAlreadyExistsError, TagNotFoundError
from article_manager.core.logging import get_logger
from article_manager.core.timeutil import ensure_utc
from article_manager.domain.tag import Tag
from article_manager.models.article import ArticleTagRecord
from article_manager.models.tag import TagRecord
from article_manager.repositories.base import BaseRepository

logger = get_logger(__name__)


class SQLAlchemyTagRepository(BaseRepository[TagRecord]):
    """Tag store backed by a relational database."""

    async def create(self, tag: Tag) -> Tag:
        """Persist a new tag.

        Raises:
            TagAlreadyExistsError: If the name is taken
        """
        await self._ensure_name_available(tag.name)
        record = TagRecord(
            name=tag.name,
            created_at=tag.created_at,
            updated_at=tag.updated_at,
        )
        try:
            await self.add(record)
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("tag_name_conflict", name=tag.name)
            raise TagAlreadyExistsError(name=tag.name) from e
        except SQLAlchemyError as e:
            raise self._database_error("create_tag", e) from e
        return self._to_entity(record)

    async def find_by_id(self, tag_id: int) -> Tag:
        """Get a tag by ID.

        Raises:
            TagNotFoundError: If no tag has this ID
        """
        return self._to_entity(await self._get_record(tag_id))

    async def find_by_name(self, name: str) -> Tag:
        """Get a tag by its exact name.

        Raises:
            TagNotFoundError: If no tag has this name
        """
        record = await self._get_record_by_name(name)
        if record is None:
            raise TagNotFoundError(name=name)
        return self._to_entity(record)

    async def find_all(self) -> list[Tag]:
        """Get all tags ordered by name."""
        try:
            result = await self.session.execute(
                select(TagRecord).order_by(TagRecord.name.asc())
            )
        except SQLAlchemyError as e:
            raise self._database_error("list_tags", e) from e
        return [self._to_entity(record) for record in result.scalars().all()]

    async def update(self, tag: Tag) -> Tag:
        """Write a renamed tag back to the store.

        Raises:
            TagNotFoundError: If the tag no longer exists
            TagAlreadyExistsError: If another tag already has the new name
        """
        record = await self._get_record(tag.id)
        if record.name != tag.name:
            await self._ensure_name_available(tag.name)

        record.name = tag.name
        record.updated_at = tag.updated_at
        try:
            await self.save_changes(record)
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("tag_name_conflict", name=tag.name, tag_id=tag.id)
            raise TagAlreadyExistsError(name=tag.name) from e
        except SQLAlchemyError as e:
            raise self._database_error("update_tag", e) from e
        return self._to_entity(record)

    async def delete(self, tag_id: int) -> None:
        """Detach a tag from every article, then delete it.

        Raises:
            TagNotFoundError: If no tag has this ID
        """
        record = await self._get_record(tag_id)
        try:
            await self.session.execute(
                delete(ArticleTagRecord).where(ArticleTagRecord.tag_id == tag_id)
            )
            await self.hard_delete(record)
        except SQLAlchemyError as e:
            raise self._database_error("delete_tag", e) from e

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    async def _get_record(self, tag_id: int) -> TagRecord:
        try:
            record = await self.get_by_id(tag_id)
        except SQLAlchemyError as e:
            raise self._database_error("find_tag", e) from e
        if record is None:
            raise TagNotFoundError(tag_id=tag_id)
        return record

    async def _get_record_by_name(self, name: str) -> TagRecord | None:
        try:
            result = await self.session.execute(
                select(TagRecord).where(TagRecord.name == name)
            )
        except SQLAlchemyError as e:
            raise self._database_error("find_tag_by_name", e) from e
        return result.scalar_one_or_none()

    async def _ensure_name_available(self, name: str) -> None:
        if await self._get_record_by_name(name) is not None:
            raise TagAlreadyExistsError(name=name)

    @staticmethod
    def _to_entity(record: TagRecord) -> Tag:
        return Tag(
            id=record.id,
            name=record.name,
            created_at=ensure_utc(record.created_at),
            updated_at=ensure_utc(record.updated_at),
        )
