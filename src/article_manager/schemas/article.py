"""Article and article-generation API schemas."""

from pydantic import ConfigDict, Field

from article_manager.core.timeutil import DEFAULT_TIMEZONE, format_datetime
from article_manager.domain.article import Article
from article_manager.schemas.common import BaseSchema

# =============================================================================
# Requests
# =============================================================================


class ArticleRequest(BaseSchema):
    """Request body for creating or replacing an article."""

    title: str = Field("", description="Article title (1-255 characters)")
    url: str = Field("", description="Article URL (http or https)")
    summary: str = Field("", description="Summary (1-1000 characters)")
    tags: list[str] = Field(default_factory=list, description="Tag names")
    memo: str = Field("", description="Free-text memo")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "asyncio入門",
                "url": "https://example.com/asyncio",
                "summary": "Pythonのasyncioの基本をまとめた記事",
                "tags": ["python", "asyncio"],
                "memo": "あとで読む",
            }
        }
    )


class GenerateArticleRequest(BaseSchema):
    """Request body for generating an article from a URL."""

    url: str = Field("", description="Page to summarize (http or https)")
    memo: str = Field("", description="Free-text memo stored with the article")


# =============================================================================
# Responses
# =============================================================================


class ArticleResponse(BaseSchema):
    """Article as returned by the API. Timestamps use the display timezone."""

    id: int
    title: str
    url: str
    summary: str
    tags: list[str]
    memo: str
    created_at: str = Field(..., description="YYYY-MM-DD HH:MM:SS")
    updated_at: str = Field(..., description="YYYY-MM-DD HH:MM:SS")

    @classmethod
    def from_entity(
        cls, article: Article, tz_name: str = DEFAULT_TIMEZONE
    ) -> "ArticleResponse":
        return cls(
            id=article.id,
            title=article.title,
            url=article.url,
            summary=article.summary,
            tags=list(article.tags),
            memo=article.memo,
            created_at=format_datetime(article.created_at, tz_name),
            updated_at=format_datetime(article.updated_at, tz_name),
        )
