"""Generic base repository with async CRUD operations.

This module provides a generic repository pattern for SQLAlchemy models.
Concrete repositories extend it and translate between ORM records and
domain entities, so callers never handle sessions or rows directly.

Usage:
    from article_manager.repositories.base import BaseRepository
    from article_manager.models.tag import TagRecord

    class SQLAlchemyTagRepository(BaseRepository[TagRecord]):
        ...

    repo = SQLAlchemyTagRepository(session)
    record = await repo.get_by_id(1)
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from article_manager.core.exceptions import DatabaseError
from article_manager.core.logging import get_logger
from article_manager.models.base import Base

logger = get_logger(__name__)

# Type variable for model classes
T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Generic repository providing async CRUD operations.

    Type Parameters:
        T: The SQLAlchemy model class

    Attributes:
        session: The async database session
        model_class: The model class for this repository
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: Async database session
        """
        self.session = session

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Extract model class from Generic type parameter."""
        super().__init_subclass__(**kwargs)
        for base in cls.__orig_bases__:  # type: ignore[attr-defined]
            if hasattr(base, "__args__"):
                cls.model_class = base.__args__[0]
                break

    async def get_by_id(self, id: int) -> T | None:
        """Get a single record by its primary key.

        Args:
            id: The record's ID

        Returns:
            The record if found, None otherwise
        """
        result = await self.session.execute(
            select(self.model_class).where(self.model_class.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def count(self) -> int:
        """Count total records."""
        result = await self.session.execute(
            select(func.count()).select_from(self.model_class)
        )
        return result.scalar_one()

    async def add(self, record: T) -> T:
        """Insert a new record.

        Returns:
            The record with its generated primary key
        """
        self.session.add(record)
        await self.session.flush()
        return record

    async def save_changes(self, record: T) -> T:
        """Flush pending changes of an existing record."""
        await self.session.flush()
        return record

    async def hard_delete(self, record: T) -> None:
        """Permanently delete a record from the database."""
        await self.session.delete(record)
        await self.session.flush()

    def _database_error(self, operation: str, exc: SQLAlchemyError) -> DatabaseError:
        """Log a driver failure and wrap it in the domain error type."""
        logger.error(
            "repository_operation_failed",
            repository=type(self).__name__,
            operation=operation,
            error=str(exc),
        )
        return DatabaseError(operation=operation, error=str(exc))
