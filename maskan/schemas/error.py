"""
Error response schemas for API documentation and consistent error formatting.
Every error body carries a stable ``message`` field.
"""

from pydantic import Field
from typing import Any, List, Optional
from maskan.schemas.common import CamelModel


class ErrorDetail(CamelModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(
        None,
        description="Field name that caused the error",
        examples=["email"]
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Invalid email format"]
    )

    type: Optional[str] = Field(
        None,
        description="Error type identifier",
        examples=["value_error"]
    )

    input: Optional[Any] = Field(
        None,
        description="Input value that caused the error"
    )


class ErrorResponse(CamelModel):
    """Schema for standardized error responses."""

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Token is not valid"]
    )

    code: str = Field(
        ...,
        description="Error code identifier",
        examples=["INVALID_TOKEN"]
    )

    request_id: Optional[str] = Field(
        None,
        description="Unique request identifier for tracking",
        examples=["abc12345"]
    )

    timestamp: str = Field(
        ...,
        description="Error timestamp in ISO format",
        examples=["2024-01-01T00:00:00Z"]
    )

    details: Optional[List[ErrorDetail]] = Field(
        None,
        description="Field-level issues for validation errors"
    )


def _error_example(code: str, message: str) -> dict:
    return {
        "description": message,
        "model": ErrorResponse,
        "content": {
            "application/json": {
                "example": {
                    "message": message,
                    "code": code,
                    "requestId": "abc12345",
                    "timestamp": "2024-01-01T00:00:00Z",
                }
            }
        },
    }


COMMON_ERROR_RESPONSES = {
    400: _error_example("VALIDATION_ERROR", "Request validation failed"),
    401: _error_example("INVALID_TOKEN", "Token is not valid"),
    403: _error_example("FORBIDDEN", "You do not own this listing"),
    404: _error_example("NOT_FOUND", "Listing not found"),
    500: _error_example("INTERNAL_SERVER_ERROR", "An unexpected error occurred"),
    502: _error_example("UPSTREAM_FAILURE", "Upstream service failed"),
    504: _error_example("REQUEST_TIMEOUT", "Request took too long and was aborted"),
}
