"""Article endpoints.

CRUD, keyword search and AI generation from a URL. ``/search`` and
``/generate`` are declared before ``/{article_id}`` so they are never parsed
as an ID.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from article_manager.core.logging import get_logger
from article_manager.dependencies import (
    SettingsDep,
    get_article_generator_service,
    get_article_service,
)
from article_manager.schemas.article import (
    ArticleRequest,
    ArticleResponse,
    GenerateArticleRequest,
)
from article_manager.schemas.common import ErrorResponse
from article_manager.services.article import ArticleService
from article_manager.services.article_generator import ArticleGeneratorService

logger = get_logger(__name__)

router = APIRouter()

ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]


@router.get(
    "",
    response_model=list[ArticleResponse],
    summary="List articles",
    description="Returns every article, newest first.",
)
async def list_articles(
    service: ArticleServiceDep, settings: SettingsDep
) -> list[ArticleResponse]:
    articles = await service.get_all()
    return [ArticleResponse.from_entity(a, settings.display_timezone) for a in articles]


@router.post(
    "",
    response_model=ArticleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an article",
    responses={400: {"model": ErrorResponse, "description": "Invalid article"}},
)
async def create_article(
    request: ArticleRequest, service: ArticleServiceDep, settings: SettingsDep
) -> ArticleResponse:
    article = await service.create(
        request.title, request.url, request.summary, tags=request.tags, memo=request.memo
    )
    return ArticleResponse.from_entity(article, settings.display_timezone)


@router.post(
    "/generate",
    response_model=ArticleResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate an article from a URL",
    description="Fetches the page, asks the AI for a title, summary and tags, "
    "and saves the result.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid URL"},
        429: {"model": ErrorResponse, "description": "AI rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "AI provider error"},
        504: {"model": ErrorResponse, "description": "AI provider timeout"},
    },
)
async def generate_article(
    request: GenerateArticleRequest,
    generator: Annotated[ArticleGeneratorService, Depends(get_article_generator_service)],
    settings: SettingsDep,
) -> ArticleResponse:
    logger.info("generate_article_request", url=request.url)
    article = await generator.generate_from_url(request.url, memo=request.memo)
    return ArticleResponse.from_entity(article, settings.display_timezone)


@router.get(
    "/search",
    response_model=list[ArticleResponse],
    summary="Search articles",
    description="Case-insensitive AND search over titles and summaries. "
    "An empty keyword returns every article.",
)
async def search_articles(
    service: ArticleServiceDep,
    settings: SettingsDep,
    keyword: Annotated[str, Query(description="Whitespace-separated terms")] = "",
) -> list[ArticleResponse]:
    articles = await service.search(keyword)
    return [ArticleResponse.from_entity(a, settings.display_timezone) for a in articles]


@router.get(
    "/{article_id}",
    response_model=ArticleResponse,
    summary="Get an article",
    responses={404: {"model": ErrorResponse, "description": "Article not found"}},
)
async def get_article(
    article_id: int, service: ArticleServiceDep, settings: SettingsDep
) -> ArticleResponse:
    article = await service.get_by_id(article_id)
    return ArticleResponse.from_entity(article, settings.display_timezone)


@router.put(
    "/{article_id}",
    response_model=ArticleResponse,
    summary="Replace an article",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid article"},
        404: {"model": ErrorResponse, "description": "Article not found"},
    },
)
async def update_article(
    article_id: int,
    request: ArticleRequest,
    service: ArticleServiceDep,
    settings: SettingsDep,
) -> ArticleResponse:
    article = await service.update(
        article_id,
        request.title,
        request.url,
        request.summary,
        tags=request.tags,
        memo=request.memo,
    )
    return ArticleResponse.from_entity(article, settings.display_timezone)


@router.delete(
    "/{article_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an article",
    responses={404: {"model": ErrorResponse, "description": "Article not found"}},
)
async def delete_article(article_id: int, service: ArticleServiceDep) -> Response:
    await service.delete(article_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
