"""Create articles from a URL using AI-generated metadata."""

from typing import Protocol

import structlog

from article_manager.core.exceptions import (
    AIGenerationError,
    AIGenerationReason,
    TagAlreadyExistsError,
    TagNotFoundError,
)
from article_manager.domain.article import Article, validate_url
from article_manager.domain.tag import Tag
from article_manager.repositories import ArticleRepository, TagRepository
from article_manager.services.ai import GeneratedArticle

logger = structlog.get_logger(__name__)


class ArticleMetadataGenerator(Protocol):
    async def generate_from_url(self, url: str) -> GeneratedArticle: ...


class ArticleGeneratorService:
    """Turns a URL into a saved article.

    The generator supplies the title, summary and tags; suggested tags are
    registered in the tag store if they do not exist yet.

    Usage:
        ```python
        service = ArticleGeneratorService(openai_service, article_repo, tag_repo)
        article = await service.generate_from_url("https://example.com", memo="later")
        ```
    """

    def __init__(
        self,
        generator: ArticleMetadataGenerator,
        article_repo: ArticleRepository,
        tag_repo: TagRepository,
    ) -> None:
        self.generator = generator
        self.article_repo = article_repo
        self.tag_repo = tag_repo

    async def generate_from_url(self, url: str, memo: str = "") -> Article:
        """Generate metadata for ``url`` and save the article.

        Raises:
            ValidationError: If the URL or a generated field is invalid
            AIGenerationError: If generation fails or returns no title or
                summary
        """
        validate_url(url)

        generated = await self.generator.generate_from_url(url)
        if not generated.title or not generated.summary:
            raise AIGenerationError(
                AIGenerationReason.INVALID_RESPONSE,
                message="generated article is missing title or summary",
            )

        tags = [await self._find_or_create_tag(name) for name in generated.suggested_tags]

        article = Article.new(
            generated.title,
            url,
            generated.summary,
            tags=[tag.name for tag in tags],
            memo=memo,
        )
        created = await self.article_repo.create(article)
        logger.info(
            "article_generated",
            article_id=created.id,
            url=url,
            tag_count=len(created.tags),
            tokens_used=generated.tokens_used,
        )
        return created

    async def _find_or_create_tag(self, name: str) -> Tag:
        try:
            return await self.tag_repo.find_by_name(name)
        except TagNotFoundError:
            pass

        try:
            return await self.tag_repo.create(Tag.new(name))
        except TagAlreadyExistsError:
            # Created concurrently between the lookup and the insert
            return await self.tag_repo.find_by_name(name)
