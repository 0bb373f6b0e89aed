"""Tag entity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from article_manager.core.exceptions import ValidationError
from article_manager.core.timeutil import utcnow

NAME_MAX_LENGTH = 50


def validate_tag_name(name: str) -> None:
    """Check a tag name.

    Raises:
        ValidationError: If the name is empty, blank or too long
    """
    if not name:
        raise ValidationError("name is required", field="name")
    if not name.strip():
        raise ValidationError("name cannot be only whitespace", field="name")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            f"name must be {NAME_MAX_LENGTH} characters or less", field="name"
        )


@dataclass
class Tag:
    """A label attached to articles. Names are unique across the store."""

    name: str
    id: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(cls, name: str) -> Tag:
        validate_tag_name(name)
        now = utcnow()
        return cls(name=name, created_at=now, updated_at=now)

    def rename(self, name: str) -> None:
        validate_tag_name(name)
        self.name = name
        self.updated_at = max(utcnow(), self.updated_at)
