"""API v1 main router.

Aggregates all v1 API routers into a single router for inclusion in the app.
"""

from fastapi import APIRouter

from article_manager.api.v1.articles import router as articles_router
from article_manager.api.v1.book_recommendations import (
    router as book_recommendations_router,
)
from article_manager.api.v1.tags import router as tags_router

router = APIRouter()

# Include sub-routers
router.include_router(articles_router, prefix="/articles", tags=["Articles"])
router.include_router(tags_router, prefix="/tags", tags=["Tags"])
router.include_router(
    book_recommendations_router,
    prefix="/book-recommendations",
    tags=["Book Recommendations"],
)
