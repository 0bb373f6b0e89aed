"""Tag API schemas."""

from pydantic import Field

from article_manager.core.timeutil import DEFAULT_TIMEZONE, format_datetime
from article_manager.domain.tag import Tag
from article_manager.schemas.common import BaseSchema


class TagRequest(BaseSchema):
    """Request body for creating or renaming a tag."""

    name: str = Field("", description="Tag name (1-50 characters)")


class TagResponse(BaseSchema):
    """Tag as returned by the API."""

    id: int
    name: str
    created_at: str = Field(..., description="YYYY-MM-DD HH:MM:SS")
    updated_at: str = Field(..., description="YYYY-MM-DD HH:MM:SS")

    @classmethod
    def from_entity(cls, tag: Tag, tz_name: str = DEFAULT_TIMEZONE) -> "TagResponse":
        return cls(
            id=tag.id,
            name=tag.name,
            created_at=format_datetime(tag.created_at, tz_name),
            updated_at=format_datetime(tag.updated_at, tz_name),
        )
