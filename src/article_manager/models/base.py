"""SQLAlchemy Base model and common mixins.

This module provides:
- Base: Declarative base for all models
- IntegerPrimaryKeyMixin: auto-incrementing integer primary key
- TimestampMixin: created_at and updated_at columns

Usage:
    from article_manager.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

    class MyModel(IntegerPrimaryKeyMixin, TimestampMixin, Base):
        __tablename__ = "my_table"
        name: Mapped[str]
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# SQLite only auto-increments INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    All models should inherit from this class to be included in migrations.
    """

    pass


class IntegerPrimaryKeyMixin:
    """Mixin that adds an auto-incrementing integer primary key.

    Identities are positive integers assigned by the database on insert.
    """

    @declared_attr
    def id(cls) -> Mapped[int]:
        return mapped_column(
            BigIntPK,
            primary_key=True,
            autoincrement=True,
        )


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns.

    Entities set both explicitly; the server defaults cover raw inserts.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            nullable=False,
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
