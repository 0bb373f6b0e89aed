"""Tag use cases."""

import structlog

from article_manager.domain.tag import Tag
from article_manager.repositories import TagRepository
from article_manager.services.article import ensure_positive_id

logger = structlog.get_logger(__name__)


class TagService:
    """Service for managing tags.

    Usage:
        ```python
        service = TagService(tag_repo)
        tag = await service.create("python")
        ```
    """

    def __init__(self, tag_repo: TagRepository) -> None:
        self.tag_repo = tag_repo

    async def get_all(self) -> list[Tag]:
        """Get every tag ordered by name."""
        return await self.tag_repo.find_all()

    async def get_by_id(self, tag_id: int) -> Tag:
        """Get one tag.

        Raises:
            InvalidArgumentError: If ``tag_id`` is not positive
            TagNotFoundError: If no tag has this ID
        """
        ensure_positive_id(tag_id)
        return await self.tag_repo.find_by_id(tag_id)

    async def create(self, name: str) -> Tag:
        """Create a tag.

        Raises:
            ValidationError: If the name is invalid
            TagAlreadyExistsError: If the name is taken
        """
        created = await self.tag_repo.create(Tag.new(name))
        logger.info("tag_created", tag_id=created.id, name=created.name)
        return created

    async def update(self, tag_id: int, name: str) -> Tag:
        """Rename a tag.

        Raises:
            InvalidArgumentError: If ``tag_id`` is not positive
            TagNotFoundError: If no tag has this ID
            ValidationError: If the new name is invalid
            TagAlreadyExistsError: If another tag has the new name
        """
        ensure_positive_id(tag_id)
        tag = await self.tag_repo.find_by_id(tag_id)
        tag.rename(name)
        updated = await self.tag_repo.update(tag)
        logger.info("tag_renamed", tag_id=updated.id, name=updated.name)
        return updated

    async def delete(self, tag_id: int) -> None:
        """Delete a tag.

        Raises:
            InvalidArgumentError: If ``tag_id`` is not positive
            TagNotFoundError: If no tag has this ID
        """
        ensure_positive_id(tag_id)
        await self.tag_repo.delete(tag_id)
        logger.info("tag_deleted", tag_id=tag_id)
