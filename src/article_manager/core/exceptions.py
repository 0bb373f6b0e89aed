"""Custom exception hierarchy for Article Manager.

Every error carries a stable ``kind`` (see ``ErrorKind``), a machine-readable
``code``, a human-readable ``message`` and optional structured ``details``.
Callers match on exception type or ``kind``, never on message text. The HTTP
status code is derived from the kind.

Usage:
    from article_manager.core.exceptions import ArticleNotFoundError

    raise ArticleNotFoundError(article_id=42)
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Transport-independent error classification."""

    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    VALIDATION = "validation"
    INVALID_ARGUMENT = "invalid_argument"
    DATABASE = "database"
    EXTERNAL_SERVICE = "external_service"
    TIMEOUT = "timeout"
    CONFLICT = "conflict"
    INTERNAL = "internal"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.EXTERNAL_SERVICE: 502,
    ErrorKind.DATABASE: 500,
    ErrorKind.INTERNAL: 500,
}


class ArticleManagerError(Exception):
    """Base exception for all Article Manager errors.

    Attributes:
        code: Machine-readable error code (e.g., "ARTICLE_NOT_FOUND")
        message: Human-readable error message
        kind: Error classification used for status mapping
        details: Additional error details (optional)
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Override default message
            code: Override default error code
            details: Additional error details
        """
        if message:
            self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status code for this error."""
        return STATUS_BY_KIND.get(self.kind, 500)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Convert exception to API error response format.

        Args:
            request_id: Request correlation ID

        Returns:
            Error response dictionary
        """
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "kind": self.kind.value,
        }
        if request_id:
            error["request_id"] = request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(ArticleManagerError):
    """Base class for resource not found errors."""

    code: str = "NOT_FOUND"
    message: str = "Resource not found"
    kind: ErrorKind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str | None = None,
        identifier: Any = None,
        message: str | None = None,
    ) -> None:
        """Initialize with optional resource information.

        Args:
            resource: Resource type (e.g., "article")
            identifier: Identifier that was looked up
            message: Override default message
        """
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if identifier is not None:
            details["identifier"] = identifier

        if not message and resource:
            message = f"{resource} not found"

        super().__init__(message=message, details=details if details else None)


class ArticleNotFoundError(NotFoundError):
    """Raised when an article cannot be found."""

    code: str = "ARTICLE_NOT_FOUND"
    message: str = "article not found"

    def __init__(self, article_id: int | None = None, message: str | None = None) -> None:
        """Initialize with optional article ID."""
        super().__init__(
            resource="article",
            identifier=article_id,
            message=message or self.message,
        )


class TagNotFoundError(NotFoundError):
    """Raised when a tag cannot be found by ID or name."""

    code: str = "TAG_NOT_FOUND"
    message: str = "tag not found"

    def __init__(
        self,
        tag_id: int | None = None,
        name: str | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize with optional identifiers."""
        super().__init__(
            resource="tag",
            identifier=tag_id if tag_id is not None else name,
            message=message or self.message,
        )


class RecommendationCacheNotFoundError(NotFoundError):
    """Raised when no unexpired recommendation cache exists."""

    code: str = "RECOMMENDATION_CACHE_NOT_FOUND"
    message: str = "no valid book recommendation cache"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            resource="book_recommendation_cache",
            identifier="valid cache",
            message=message or self.message,
        )


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class AlreadyExistsError(ArticleManagerError):
    """Raised when a uniqueness constraint would be violated."""

    code: str = "ALREADY_EXISTS"
    message: str = "Resource already exists"
    kind: ErrorKind = ErrorKind.ALREADY_EXISTS

    def __init__(
        self,
        resource: str | None = None,
        identifier: Any = None,
        message: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if identifier is not None:
            details["identifier"] = identifier

        if not message and resource:
            message = f"{resource} already exists"

        super().__init__(message=message, details=details if details else None)


class TagAlreadyExistsError(AlreadyExistsError):
    """Raised when a tag name is already taken."""

    code: str = "TAG_ALREADY_EXISTS"

    def __init__(self, name: str | None = None, message: str | None = None) -> None:
        if not message and name:
            message = f"tag '{name}' already exists"
        super().__init__(resource="tag", identifier=name, message=message)


class ConflictError(ArticleManagerError):
    """Raised when an operation conflicts with the current resource state."""

    code: str = "CONFLICT"
    message: str = "Resource state conflict"
    kind: ErrorKind = ErrorKind.CONFLICT


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(ArticleManagerError):
    """Raised when input validation fails."""

    code: str = "VALIDATION_ERROR"
    message: str = "Validation error"
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with optional field information."""
        if details is None:
            details = {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message=message, details=details if details else None)


class NoValidRecommendationsError(ValidationError):
    """Raised when every recommended book lacked required fields."""

    code: str = "NO_VALID_RECOMMENDATIONS"
    message: str = "Failed to process any book recommendations"

    def __init__(self, candidate_count: int | None = None) -> None:
        details: dict[str, Any] = {}
        if candidate_count is not None:
            details["candidate_count"] = candidate_count
        super().__init__(field="books", details=details)


class InvalidArgumentError(ArticleManagerError):
    """Raised when a caller-supplied argument is malformed (e.g., id <= 0)."""

    code: str = "INVALID_ARGUMENT"
    message: str = "Invalid argument"
    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(
        self,
        message: str | None = None,
        argument: str | None = None,
        value: Any = None,
    ) -> None:
        details: dict[str, Any] = {}
        if argument:
            details["argument"] = argument
        if value is not None:
            details["value"] = value
        super().__init__(message=message, details=details if details else None)


# =============================================================================
# Database Errors (500)
# =============================================================================


class DatabaseError(ArticleManagerError):
    """Raised when a store operation fails (connection, constraint, driver)."""

    code: str = "DATABASE_ERROR"
    message: str = "Database operation failed"
    kind: ErrorKind = ErrorKind.DATABASE

    def __init__(
        self,
        operation: str | None = None,
        error: str | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize with the failing operation.

        Args:
            operation: Store operation name (e.g., "save_recommendation_cache")
            error: Underlying driver error text
            message: Override default message
        """
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
            if not message:
                message = f"database operation failed: {operation}"
        if error:
            details["error"] = error
        self.operation = operation
        super().__init__(message=message, details=details if details else None)


class InternalError(ArticleManagerError):
    """Raised for unexpected internal failures."""

    code: str = "INTERNAL_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL


class ServiceTimeoutError(ArticleManagerError):
    """Raised when a downstream call exceeds its deadline."""

    code: str = "TIMEOUT"
    message: str = "Operation timed out"
    kind: ErrorKind = ErrorKind.TIMEOUT


# =============================================================================
# External Service Errors (502 and friends)
# =============================================================================


class ExternalServiceError(ArticleManagerError):
    """Base class for external service errors."""

    code: str = "EXTERNAL_SERVICE_ERROR"
    message: str = "External service error"
    kind: ErrorKind = ErrorKind.EXTERNAL_SERVICE


class AIGenerationReason(str, Enum):
    """Failure reasons reported by the AI metadata generator."""

    INVALID_URL = "invalid_url"
    API_LIMIT = "api_limit"
    TIMEOUT = "timeout"
    CONTENT_BLOCKED = "content_blocked"
    INVALID_RESPONSE = "invalid_response"
    NETWORK_ERROR = "network_error"
    UNAUTHORIZED = "unauthorized"


_AI_CODES: dict[AIGenerationReason, str] = {
    AIGenerationReason.INVALID_URL: "INVALID_URL",
    AIGenerationReason.API_LIMIT: "API_LIMIT_EXCEEDED",
    AIGenerationReason.TIMEOUT: "TIMEOUT",
    AIGenerationReason.CONTENT_BLOCKED: "CONTENT_BLOCKED",
    AIGenerationReason.INVALID_RESPONSE: "INVALID_RESPONSE",
    AIGenerationReason.NETWORK_ERROR: "NETWORK_ERROR",
    AIGenerationReason.UNAUTHORIZED: "UNAUTHORIZED",
}

_AI_STATUS: dict[AIGenerationReason, int] = {
    AIGenerationReason.API_LIMIT: 429,
    AIGenerationReason.TIMEOUT: 504,
    AIGenerationReason.INVALID_RESPONSE: 502,
    AIGenerationReason.NETWORK_ERROR: 502,
    AIGenerationReason.UNAUTHORIZED: 401,
    AIGenerationReason.CONTENT_BLOCKED: 403,
    AIGenerationReason.INVALID_URL: 400,
}

_AI_RETRYABLE = frozenset(
    {
        AIGenerationReason.NETWORK_ERROR,
        AIGenerationReason.API_LIMIT,
        AIGenerationReason.TIMEOUT,
    }
)


class AIGenerationError(ExternalServiceError):
    """Raised when the AI provider fails to produce usable output."""

    message: str = "AI generation failed"

    def __init__(
        self,
        reason: AIGenerationReason,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.reason = reason
        if reason is AIGenerationReason.TIMEOUT:
            self.kind = ErrorKind.TIMEOUT
        super().__init__(message=message, code=_AI_CODES[reason], details=details)

    @property
    def status_code(self) -> int:
        return _AI_STATUS.get(self.reason, 500)

    @property
    def is_retryable(self) -> bool:
        """Whether a caller could reasonably try again."""
        return self.reason in _AI_RETRYABLE


class BookRecommendationReason(str, Enum):
    """Failure reasons reported by the book recommendation collaborators."""

    NO_ARTICLES = "no_articles"
    AI_ERROR = "ai_error"
    BOOKS_API_ERROR = "books_api_error"


class BookRecommendationError(ExternalServiceError):
    """Raised by the book recommender or the bibliographic lookup."""

    message: str = "Book recommendation failed"

    def __init__(
        self,
        reason: BookRecommendationReason,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message=message, code=reason.value.upper(), details=details)
