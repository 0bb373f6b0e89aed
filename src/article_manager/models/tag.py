"""Tag model. Tag names are unique."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from article_manager.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class TagRecord(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A persisted tag."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<TagRecord(id={self.id}, name='{self.name}')>"
