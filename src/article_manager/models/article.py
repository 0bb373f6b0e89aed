"""Article and article-tag association models.

Articles reference tags through ``article_tags``, an association table that
also records each tag's position so the article's tag order survives a round
trip. Callers of the article repository only ever see tag names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from article_manager.models.base import (
    Base,
    BigIntPK,
    IntegerPrimaryKeyMixin,
    TimestampMixin,
)

if TYPE_CHECKING:
    from article_manager.models.tag import TagRecord


class ArticleRecord(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A persisted article.

    Attributes:
        title: Article title (max 255 characters)
        url: Source URL
        summary: Summary text (max 1000 characters)
        memo: Free-form note
        tag_links: Ordered association rows to tags
    """

    __tablename__ = "articles"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    memo: Mapped[str] = mapped_column(Text, nullable=False, default="")

    tag_links: Mapped[list[ArticleTagRecord]] = relationship(
        "ArticleTagRecord",
        back_populates="article",
        cascade="all, delete-orphan",
        order_by="ArticleTagRecord.position",
        lazy="selectin",
    )

    __table_args__ = (Index("ix_articles_created_at", "created_at"),)

    @property
    def tag_names(self) -> list[str]:
        return [link.tag.name for link in self.tag_links]

    def __repr__(self) -> str:
        return f"<ArticleRecord(id={self.id}, title='{self.title}')>"


class ArticleTagRecord(Base):
    """Association between an article and a tag."""

    __tablename__ = "article_tags"

    article_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("articles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    article: Mapped[ArticleRecord] = relationship(
        "ArticleRecord", back_populates="tag_links"
    )
    tag: Mapped[TagRecord] = relationship("TagRecord", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<ArticleTagRecord(article_id={self.article_id}, "
            f"tag_id={self.tag_id}, position={self.position})>"
        )
