"""Common Pydantic schemas used across the API.

This module provides shared schemas for:
- Error responses (consistent error format)
- Health checks and simple message responses
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Base Configuration
# =============================================================================


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Strings are passed through untouched; field rules live on the domain
    entities so the API and the services report the same messages.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow entity conversion
        populate_by_name=True,  # Allow both alias and field name
    )


# =============================================================================
# Error Schemas
# =============================================================================


class ErrorDetail(BaseModel):
    """Details of an error response.

    Attributes:
        code: Machine-readable error code (e.g., "ARTICLE_NOT_FOUND")
        message: Human-readable error description
        kind: Transport-independent error category
        request_id: Correlation ID for tracing (optional)
        details: Additional error context (optional)
    """

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    kind: str | None = Field(None, description="Error category (e.g., not_found)")
    request_id: str | None = Field(
        None, description="Request correlation ID for tracing"
    )
    details: dict[str, Any] | None = Field(None, description="Additional error context")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "ARTICLE_NOT_FOUND",
                "message": "article not found",
                "kind": "not_found",
                "request_id": "abc-123-def-456",
            }
        }
    )


class ErrorResponse(BaseModel):
    """Standard error response wrapper.

    All API errors return this format.
    """

    error: ErrorDetail


# =============================================================================
# Health Check Schemas
# =============================================================================


class HealthCheckResponse(BaseModel):
    """Health check endpoint response.

    Attributes:
        status: Overall health status
        checks: Individual service health checks
    """

    status: str = Field(..., pattern="^(ok|degraded|error)$")
    checks: dict[str, str] = Field(
        default_factory=dict, description="Individual service checks"
    )


# =============================================================================
# Message Response Schemas
# =============================================================================


class MessageResponse(BaseModel):
    """API root response."""

    message: str = Field(..., description="Response message")
    version: str = Field(..., description="API version")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"message": "Article Manager API", "version": "1.0.0"}
        }
    )
