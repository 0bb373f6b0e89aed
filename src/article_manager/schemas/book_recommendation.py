"""Book recommendation API schemas.

Field names are camelCase on the wire. Empty optional values (``isbn``,
store links) are omitted rather than sent as empty strings.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from article_manager.core.timeutil import DEFAULT_TIMEZONE, format_datetime
from article_manager.domain.book import Book, BookRecommendationCache


class _OmitNoneModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @model_serializer(mode="wrap")
    def _omit_none(self, handler: Any) -> dict[str, Any]:
        return {key: value for key, value in handler(self).items() if value is not None}


class PurchaseLinksResponse(_OmitNoneModel):
    """Store links for a recommended book."""

    amazon: str | None = None
    rakuten: str | None = None


class BookResponse(_OmitNoneModel):
    """A recommended book."""

    title: str
    author: str
    isbn: str | None = None
    purchase_links: PurchaseLinksResponse = Field(
        default_factory=PurchaseLinksResponse, alias="purchaseLinks"
    )

    @classmethod
    def from_entity(cls, book: Book) -> "BookResponse":
        return cls(
            title=book.title,
            author=book.author,
            isbn=book.isbn or None,
            purchase_links=PurchaseLinksResponse(
                amazon=book.purchase_links.amazon or None,
                rakuten=book.purchase_links.rakuten or None,
            ),
        )


class BookRecommendationResponse(BaseModel):
    """Current recommendation set.

    Attributes:
        books: Recommended books in recommender order
        cached: True when the set was persisted
        generated_at: Generation time, null for an empty set
        expires_at: Expiry time, null for an empty set
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "books": [
                    {
                        "title": "リーダブルコード",
                        "author": "Dustin Boswell, Trevor Foucher",
                        "isbn": "4873115655",
                        "purchaseLinks": {
                            "amazon": "https://www.amazon.co.jp/dp/4873115655",
                            "rakuten": "https://books.rakuten.co.jp/search?sitem=9784873115658",
                        },
                    }
                ],
                "cached": True,
                "generatedAt": "2025-01-01 09:00:00",
                "expiresAt": "2025-01-02 09:00:00",
            }
        },
    )

    books: list[BookResponse]
    cached: bool
    generated_at: str | None = Field(None, alias="generatedAt")
    expires_at: str | None = Field(None, alias="expiresAt")

    @classmethod
    def from_cache(
        cls, cache: BookRecommendationCache, tz_name: str = DEFAULT_TIMEZONE
    ) -> "BookRecommendationResponse":
        if not cache.books:
            return cls(books=[], cached=False)
        return cls(
            books=[BookResponse.from_entity(book) for book in cache.books],
            cached=cache.is_persisted,
            generated_at=format_datetime(cache.generated_at, tz_name),
            expires_at=format_datetime(cache.expires_at, tz_name),
        )
