"""FastAPI application factory for Article Manager.

This module creates and configures the FastAPI application with:
- Lifespan management for startup/shutdown events
- Middleware configuration (CORS, request ID, logging)
- Exception handlers
- API routers
"""

import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from article_manager.config import RepositoryBackend, Settings, get_settings
from article_manager.core.exceptions import ArticleManagerError, ErrorKind
from article_manager.core.logging import (
    clear_correlation_id,
    configure_logging,
    get_logger,
    set_correlation_id,
)
from article_manager.schemas.common import HealthCheckResponse, MessageResponse
from article_manager.services.ai import OpenAIService, set_openai_service
from article_manager.services.cache import get_cache_service, set_redis_client
from article_manager.services.google_books import (
    GoogleBooksService,
    set_google_books_service,
)

# Initialize logger for this module
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan events.

    Handles initialization and cleanup of:
    - Logging configuration
    - Database connection pool (database backend only)
    - Redis connection for bibliographic lookups
    - OpenAI and Google Books clients

    Args:
        app: The FastAPI application instance

    Yields:
        None: Control back to the application
    """
    from article_manager.core.database import close_db, init_db

    settings: Settings = app.state.settings

    # ========================================
    # Startup
    # ========================================
    configure_logging(settings)
    startup_logger = get_logger(__name__)

    use_database = settings.repository_backend == RepositoryBackend.DATABASE
    if use_database:
        await init_db(settings, create_schema=settings.is_development)

    redis: Redis | None = None
    if settings.bibliographic_cache_enabled:
        redis = Redis.from_url(settings.redis_url)
        set_redis_client(redis)

    openai_service = OpenAIService(settings)
    google_books = GoogleBooksService(get_cache_service(), settings)
    set_openai_service(openai_service)
    set_google_books_service(google_books)

    startup_logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.app_env.value,
        repository_backend=settings.repository_backend.value,
        debug=settings.debug,
    )

    yield

    # ========================================
    # Shutdown
    # ========================================
    await openai_service.close()
    await google_books.close()
    set_openai_service(None)
    set_google_books_service(None)

    if redis is not None:
        await redis.aclose()
        set_redis_client(None)

    if use_database:
        await close_db()

    startup_logger.info("Application shutting down", app_name=settings.app_name)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing

    Returns:
        FastAPI: Configured application instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Bookmark articles with summaries and tags, generate them from a URL "
            "with AI, and get book recommendations based on what you read."
        ),
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ========================================
    # Middleware
    # ========================================
    configure_middleware(app, settings)

    # ========================================
    # Exception Handlers
    # ========================================
    configure_exception_handlers(app)

    # ========================================
    # Routes
    # ========================================
    configure_routes(app)

    return app


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware.

    Args:
        app: The FastAPI application instance
        settings: Application settings
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next: Any) -> Any:
        """Log requests and responses with correlation ID."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        set_correlation_id(request_id)

        request_logger = get_logger("article_manager.request")
        start_time = time.perf_counter()

        request_logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            query=str(request.query_params) if request.query_params else None,
        )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            request_logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            request_logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
            )
            raise

        finally:
            clear_correlation_id()


def configure_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers.

    Args:
        app: The FastAPI application instance
    """
    exception_logger = get_logger("article_manager.exceptions")

    @app.exception_handler(ArticleManagerError)
    async def article_manager_exception_handler(
        request: Request, exc: ArticleManagerError
    ) -> JSONResponse:
        """Handle domain exceptions with a structured error response."""
        request_id = getattr(request.state, "request_id", None)

        if exc.status_code >= 500:
            exception_logger.error(
                "Application error",
                error_code=exc.code,
                error_kind=exc.kind.value,
                error_message=exc.message,
                status_code=exc.status_code,
                path=request.url.path,
            )
        else:
            exception_logger.warning(
                "Client error",
                error_code=exc.code,
                error_kind=exc.kind.value,
                error_message=exc.message,
                status_code=exc.status_code,
                path=request.url.path,
            )

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(request_id=request_id),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed requests (bad JSON, non-integer IDs) as 400."""
        request_id = getattr(request.state, "request_id", None)
        errors = exc.errors()
        message = "invalid request"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()))
            message = f"{location}: {errors[0].get('msg', 'invalid value')}"

        exception_logger.warning(
            "Request validation failed", path=request.url.path, error_message=message
        )

        error: dict[str, Any] = {
            "code": "VALIDATION_ERROR",
            "message": message,
            "kind": ErrorKind.VALIDATION.value,
            "details": {"errors": jsonable_encoder(errors)},
        }
        if request_id:
            error["request_id"] = request_id
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": error})

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions with a consistent error response."""
        request_id = getattr(request.state, "request_id", None)

        exception_logger.exception(
            "Unhandled exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred",
                    "kind": ErrorKind.INTERNAL.value,
                    "request_id": request_id,
                }
            },
        )


def configure_routes(app: FastAPI) -> None:
    """Configure application routes.

    Args:
        app: The FastAPI application instance
    """

    @app.get(
        "/health/live",
        tags=["Health"],
        summary="Liveness probe",
        description="Returns OK if the service is running",
    )
    async def liveness() -> dict[str, str]:
        """Liveness probe for container orchestration."""
        return {"status": "ok"}

    @app.get(
        "/health/ready",
        tags=["Health"],
        summary="Readiness probe",
        description="Returns OK if the service is ready to accept requests",
        response_model=HealthCheckResponse,
    )
    async def readiness(request: Request) -> HealthCheckResponse:
        """Readiness probe checking dependent services."""
        from article_manager.core.database import check_db_connection

        settings: Settings = request.app.state.settings
        checks: dict[str, str] = {}

        if settings.repository_backend == RepositoryBackend.DATABASE:
            checks["database"] = "ok" if await check_db_connection() else "error"
        else:
            checks["database"] = "skipped"

        cache = get_cache_service()
        if cache is None:
            checks["redis"] = "skipped"
        else:
            try:
                await cache.redis.ping()
                checks["redis"] = "ok"
            except Exception as e:
                logger.warning("redis_ping_failed", error=str(e))
                checks["redis"] = "error"

        if checks["database"] == "error":
            overall_status = "error"
        elif checks["redis"] == "error":
            # Lookups still work without the cache
            overall_status = "degraded"
        else:
            overall_status = "ok"

        return HealthCheckResponse(status=overall_status, checks=checks)

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
        description="Returns API information",
        response_model=MessageResponse,
    )
    async def root() -> MessageResponse:
        """API root endpoint with service information."""
        settings: Settings = app.state.settings
        return MessageResponse(message=settings.app_name, version=settings.app_version)

    # Include API v1 router
    from article_manager.api.v1.router import router as v1_router

    app.include_router(v1_router, prefix="/api")


# Create the application instance
app = create_app()


def cli() -> None:
    """CLI entry point for running the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "article_manager.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    cli()
