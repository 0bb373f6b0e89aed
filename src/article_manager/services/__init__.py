"""Services package for Article Manager.

This module exports service classes for business logic.
"""

from article_manager.services.ai import (
    GeneratedArticle,
    OpenAIService,
    RecommendedBook,
    get_openai_service,
    set_openai_service,
)
from article_manager.services.article import ArticleService
from article_manager.services.article_generator import ArticleGeneratorService
from article_manager.services.cache import (
    CacheService,
    get_cache_service,
    set_redis_client,
)
from article_manager.services.google_books import (
    BookDetail,
    GoogleBooksError,
    GoogleBooksService,
    get_google_books_service,
    set_google_books_service,
)
from article_manager.services.recommendation_cache import (
    BookRecommendationCacheManager,
)
from article_manager.services.tag import TagService

__all__ = [
    # Use cases
    "ArticleService",
    "ArticleGeneratorService",
    "TagService",
    "BookRecommendationCacheManager",
    # OpenAI
    "GeneratedArticle",
    "OpenAIService",
    "RecommendedBook",
    "get_openai_service",
    "set_openai_service",
    # Cache
    "CacheService",
    "get_cache_service",
    "set_redis_client",
    # Google Books
    "BookDetail",
    "GoogleBooksError",
    "GoogleBooksService",
    "get_google_books_service",
    "set_google_books_service",
]
