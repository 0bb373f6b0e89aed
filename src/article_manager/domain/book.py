"""Book and recommendation cache entities.

Books have no identity of their own. They only exist inside a
``BookRecommendationCache``, a time-boxed snapshot of recommendations derived
from the saved articles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from article_manager.core.exceptions import ValidationError
from article_manager.core.timeutil import ensure_utc, utcnow

BOOK_TITLE_MAX_LENGTH = 500
AUTHOR_MAX_LENGTH = 255
DEFAULT_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class PurchaseLinks:
    """Store links for a book. Empty strings mean "no link"."""

    amazon: str = ""
    rakuten: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"amazon": self.amazon, "rakuten": self.rakuten}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PurchaseLinks:
        data = data or {}
        return cls(amazon=data.get("amazon") or "", rakuten=data.get("rakuten") or "")


@dataclass(frozen=True)
class Book:
    """A recommended book."""

    title: str
    author: str = ""
    isbn: str = ""
    purchase_links: PurchaseLinks = field(default_factory=PurchaseLinks)

    @classmethod
    def new(
        cls,
        title: str,
        author: str,
        isbn: str = "",
        purchase_links: PurchaseLinks | None = None,
    ) -> Book:
        """Build a fully validated book.

        Raises:
            ValidationError: If any field is invalid
        """
        links = purchase_links or PurchaseLinks()
        if not title:
            raise ValidationError("book title is required", field="title")
        if len(title) > BOOK_TITLE_MAX_LENGTH:
            raise ValidationError(
                f"book title must be {BOOK_TITLE_MAX_LENGTH} characters or less",
                field="title",
            )
        if not author:
            raise ValidationError("author is required", field="author")
        if len(author) > AUTHOR_MAX_LENGTH:
            raise ValidationError(
                f"author must be {AUTHOR_MAX_LENGTH} characters or less",
                field="author",
            )
        if isbn and len(isbn) not in (10, 13):
            raise ValidationError("isbn must be 10 or 13 characters", field="isbn")
        for store, link in (("amazon", links.amazon), ("rakuten", links.rakuten)):
            if link and not link.startswith(("http://", "https://")):
                raise ValidationError(
                    f"{store} link must start with http:// or https://",
                    field="purchase_links",
                )
        return cls(title=title, author=author, isbn=isbn, purchase_links=links)

    @property
    def is_complete(self) -> bool:
        """Whether the fields required for a recommendation are present."""
        return bool(self.title.strip()) and bool(self.author.strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "purchase_links": self.purchase_links.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Book:
        return cls(
            title=data.get("title", ""),
            author=data.get("author", ""),
            isbn=data.get("isbn", ""),
            purchase_links=PurchaseLinks.from_dict(data.get("purchase_links")),
        )


@dataclass
class BookRecommendationCache:
    """A generated set of recommendations with a fixed expiry.

    Attributes:
        books: Recommended books, in recommender order
        generated_at: Generation instant (UTC)
        expires_at: generated_at + TTL
        id: Store-assigned identity (0 until persisted)
    """

    books: list[Book]
    generated_at: datetime
    expires_at: datetime
    id: int = 0

    @classmethod
    def new(
        cls,
        books: list[Book],
        ttl: timedelta = DEFAULT_TTL,
        now: datetime | None = None,
    ) -> BookRecommendationCache:
        """Build a fresh cache expiring ``ttl`` after ``now``.

        Raises:
            ValidationError: If a book lacks a title or an author
        """
        for index, book in enumerate(books):
            if not book.title:
                raise ValidationError(
                    f"book title is required at index {index}", field="books"
                )
            if not book.author:
                raise ValidationError(
                    f"author is required at index {index}", field="books"
                )

        generated_at = now or utcnow()
        return cls(
            books=list(books),
            generated_at=generated_at,
            expires_at=generated_at + ttl,
        )

    @classmethod
    def empty(cls, ttl: timedelta = DEFAULT_TTL) -> BookRecommendationCache:
        return cls.new([], ttl=ttl)

    def is_valid(self, now: datetime | None = None) -> bool:
        """True while ``now`` is strictly before ``expires_at``."""
        current = ensure_utc(now) if now else utcnow()
        return current < ensure_utc(self.expires_at)

    @property
    def is_persisted(self) -> bool:
        return self.id > 0
