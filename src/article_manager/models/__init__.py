"""Models package for Article Manager.

This module exports the Base class and all model classes so that
``Base.metadata`` is complete for migrations and ``create_all``.
"""

from article_manager.models.article import ArticleRecord, ArticleTagRecord
from article_manager.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin
from article_manager.models.book_recommendation import BookRecommendationRecord
from article_manager.models.tag import TagRecord

__all__ = [
    # Base and Mixins
    "Base",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    # Tables
    "ArticleRecord",
    "ArticleTagRecord",
    "TagRecord",
    "BookRecommendationRecord",
]
