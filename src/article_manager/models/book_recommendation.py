"""Book recommendation cache model.

The table holds at most one current row: saving a new recommendation set
deletes the previous rows in the same transaction. Books are stored as a JSON
array since they have no identity of their own.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from article_manager.models.base import Base, IntegerPrimaryKeyMixin


class BookRecommendationRecord(IntegerPrimaryKeyMixin, Base):
    """A persisted recommendation set.

    Attributes:
        recommendations_json: List of serialized books
        generated_at: When the recommendations were generated
        expires_at: When the set stops being served
        created_at: Row insertion time, used to pick the latest row
    """

    __tablename__ = "book_recommendations"

    recommendations_json: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_book_recommendations_expires_at", "expires_at"),
        Index("ix_book_recommendations_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BookRecommendationRecord(id={self.id}, "
            f"books={len(self.recommendations_json or [])}, expires_at={self.expires_at})>"
        )
