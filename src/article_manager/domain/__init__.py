"""Domain entities and pure business rules.

Nothing in this package touches the database, HTTP or the AI providers.
"""

from article_manager.domain.article import Article
from article_manager.domain.book import Book, BookRecommendationCache, PurchaseLinks
from article_manager.domain.search import search_articles, tokenize_keyword
from article_manager.domain.tag import Tag

__all__ = [
    "Article",
    "Book",
    "BookRecommendationCache",
    "PurchaseLinks",
    "Tag",
    "search_articles",
    "tokenize_keyword",
]
