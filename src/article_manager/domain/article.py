"""Article entity.

An article is a bookmarked web page with a title, URL, summary, tags and a
free-text memo. The same validation runs at construction and on update, and a
failed update leaves the article untouched.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from article_manager.core.exceptions import ValidationError
from article_manager.core.timeutil import utcnow

TITLE_MAX_LENGTH = 255
SUMMARY_MAX_LENGTH = 1000
TAG_MAX_LENGTH = 50


def validate_title(title: str) -> None:
    if not title:
        raise ValidationError("title is required", field="title")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"title must be {TITLE_MAX_LENGTH} characters or less", field="title"
        )


def validate_url(url: str) -> None:
    if not url:
        raise ValidationError("url is required", field="url")
    if not url.startswith(("http://", "https://")):
        raise ValidationError(
            "url must start with http:// or https://", field="url"
        )


def validate_summary(summary: str) -> None:
    if not summary:
        raise ValidationError("summary is required", field="summary")
    if len(summary) > SUMMARY_MAX_LENGTH:
        raise ValidationError(
            f"summary must be {SUMMARY_MAX_LENGTH} characters or less",
            field="summary",
        )


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Validate tag names and return them as an ordered, duplicate-free list.

    Raises:
        ValidationError: If a tag is empty or too long
    """
    result: list[str] = []
    for tag in tags or []:
        if not tag:
            raise ValidationError("tag cannot be empty", field="tags")
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationError(
                f"each tag must be {TAG_MAX_LENGTH} characters or less",
                field="tags",
            )
        if tag not in result:
            result.append(tag)
    return result


@dataclass
class Article:
    """A bookmarked article.

    Attributes:
        title: 1-255 characters
        url: Absolute http(s) URL
        summary: 1-1000 characters
        tags: Ordered tag names, each 1-50 characters
        memo: Free text, may be empty
        id: Store-assigned identity (0 until persisted)
        created_at: Creation instant (UTC), never changes
        updated_at: Last mutation instant (UTC)
    """

    title: str
    url: str
    summary: str
    tags: list[str] = field(default_factory=list)
    memo: str = ""
    id: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        title: str,
        url: str,
        summary: str,
        tags: Iterable[str] | None = None,
        memo: str = "",
    ) -> Article:
        """Build a validated, not yet persisted article.

        Raises:
            ValidationError: If any field is invalid
        """
        validate_title(title)
        validate_url(url)
        validate_summary(summary)
        clean_tags = normalize_tags(tags)

        now = utcnow()
        return cls(
            title=title,
            url=url,
            summary=summary,
            tags=clean_tags,
            memo=memo or "",
            created_at=now,
            updated_at=now,
        )

    def update(
        self,
        title: str,
        url: str,
        summary: str,
        tags: Iterable[str] | None = None,
        memo: str = "",
    ) -> None:
        """Replace the editable fields and refresh ``updated_at``.

        Every field is validated before anything is assigned.

        Raises:
            ValidationError: If any field is invalid
        """
        validate_title(title)
        validate_url(url)
        validate_summary(summary)
        clean_tags = normalize_tags(tags)

        self.title = title
        self.url = url
        self.summary = summary
        self.tags = clean_tags
        self.memo = memo or ""
        self.updated_at = _advance(self.updated_at)


def _advance(previous: datetime) -> datetime:
    """Return now, nudged past ``previous`` if the clock has not moved."""
    now = utcnow()
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now
