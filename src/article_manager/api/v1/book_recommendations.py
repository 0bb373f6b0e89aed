"""Book recommendation endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from article_manager.dependencies import SettingsDep, get_recommendation_cache_manager
from article_manager.schemas.book_recommendation import BookRecommendationResponse
from article_manager.schemas.common import ErrorResponse
from article_manager.services.recommendation_cache import (
    BookRecommendationCacheManager,
)

router = APIRouter()


@router.get(
    "",
    response_model=BookRecommendationResponse,
    summary="Get book recommendations",
    description="Returns books matched to the saved articles. Results are cached "
    "for a fixed period; the first request after expiry regenerates them.",
    responses={
        400: {"model": ErrorResponse, "description": "No valid recommendations"},
        502: {"model": ErrorResponse, "description": "Recommendation provider error"},
    },
)
async def get_book_recommendations(
    manager: Annotated[
        BookRecommendationCacheManager, Depends(get_recommendation_cache_manager)
    ],
    settings: SettingsDep,
) -> BookRecommendationResponse:
    cache = await manager.get_recommendations()
    return BookRecommendationResponse.from_cache(cache, settings.display_timezone)
