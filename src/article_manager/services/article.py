"""Article use cases.

Thin orchestration over the article store: argument checks, entity
validation and logging. Persistence details stay in the repository.
"""

from collections.abc import Iterable

import structlog

from article_manager.core.exceptions import InvalidArgumentError
from article_manager.domain.article import Article
from article_manager.repositories import ArticleRepository

logger = structlog.get_logger(__name__)


def ensure_positive_id(value: int, argument: str = "id") -> None:
    """Reject identifiers that can never exist.

    Raises:
        InvalidArgumentError: If ``value`` is not positive
    """
    if value <= 0:
        raise InvalidArgumentError(
            message=f"{argument} must be a positive integer",
            argument=argument,
            value=value,
        )


class ArticleService:
    """Service for creating, editing and finding articles.

    Usage:
        ```python
        service = ArticleService(article_repo)
        article = await service.create(title, url, summary, tags=["python"])
        ```
    """

    def __init__(self, article_repo: ArticleRepository) -> None:
        self.article_repo = article_repo

    async def get_all(self) -> list[Article]:
        """Get every article, newest first."""
        return await self.article_repo.find_all()

    async def get_by_id(self, article_id: int) -> Article:
        """Get one article.

        Raises:
            InvalidArgumentError: If ``article_id`` is not positive
            ArticleNotFoundError: If no article has this ID
        """
        ensure_positive_id(article_id)
        return await self.article_repo.find_by_id(article_id)

    async def create(
        self,
        title: str,
        url: str,
        summary: str,
        tags: Iterable[str] | None = None,
        memo: str = "",
    ) -> Article:
        """Validate and persist a new article.

        Raises:
            ValidationError: If any field is invalid
        """
        article = Article.new(title, url, summary, tags=tags, memo=memo)
        created = await self.article_repo.create(article)
        logger.info("article_created", article_id=created.id, tag_count=len(created.tags))
        return created

    async def update(
        self,
        article_id: int,
        title: str,
        url: str,
        summary: str,
        tags: Iterable[str] | None = None,
        memo: str = "",
    ) -> Article:
        """Replace the editable fields of an article.

        Raises:
            InvalidArgumentError: If ``article_id`` is not positive
            ArticleNotFoundError: If no article has this ID
            ValidationError: If any field is invalid (nothing is written)
        """
        ensure_positive_id(article_id)
        article = await self.article_repo.find_by_id(article_id)
        article.update(title, url, summary, tags=tags, memo=memo)
        updated = await self.article_repo.update(article)
        logger.info("article_updated", article_id=updated.id)
        return updated

    async def delete(self, article_id: int) -> None:
        """Delete an article.

        Raises:
            InvalidArgumentError: If ``article_id`` is not positive
            ArticleNotFoundError: If no article has this ID
        """
        ensure_positive_id(article_id)
        await self.article_repo.delete(article_id)
        logger.info("article_deleted", article_id=article_id)

    async def search(self, keyword: str | None) -> list[Article]:
        """Find articles matching every whitespace-separated token."""
        results = await self.article_repo.search(keyword)
        logger.debug("articles_searched", keyword=keyword, result_count=len(results))
        return results
