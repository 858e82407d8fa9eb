"""
Custom exception classes for the Maskan Listings API.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Malformed input, with optional field-level issues."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, Any]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, field_errors=[{"field": field, "message": message}])


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )


class DuplicateEmailError(BadRequestError):
    """Signup or profile change with an email that is already registered."""

    def __init__(self, detail: str = "User already exists"):
        super().__init__(detail, error_code="DUPLICATE_EMAIL")


class InvalidCredentialsError(BadRequestError):
    """Login failure; identical for unknown email and wrong password."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(detail, error_code="INVALID_CREDENTIALS")


class InvalidOrExpiredTokenError(BadRequestError):
    """Verification or reset token that is unknown, used or expired."""

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(detail, error_code="INVALID_OR_EXPIRED_TOKEN")


class UploadRejectedError(BadRequestError):
    """File part refused before anything was stored."""

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(f"Upload rejected: {detail}", error_code="UPLOAD_REJECTED")
        self.field = field


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )


class UnauthenticatedError(UnauthorizedError):
    """No bearer credential on a protected route."""

    def __init__(self, detail: str = "No token, authorization denied"):
        super().__init__(detail, error_code="UNAUTHENTICATED")


class InvalidTokenError(UnauthorizedError):
    """Bearer token that fails verification or names no live user."""

    def __init__(self, detail: str = "Token is not valid"):
        super().__init__(detail, error_code="INVALID_TOKEN")


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ListingOwnershipError(ForbiddenError):
    """Mutation of a listing by someone other than its owner."""

    def __init__(self, detail: str = "You do not own this listing"):
        super().__init__(detail)


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class ListingNotFoundError(NotFoundError):
    def __init__(self, listing_id: str):
        super().__init__("Listing", listing_id)


class UpstreamFailureError(APIException):
    """Object store or notification provider failure."""

    def __init__(self, detail: str = "Upstream service failed"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="UPSTREAM_FAILURE"
        )


class RequestTimeoutError(APIException):
    """The request deadline elapsed before uploads and persistence finished."""

    def __init__(self, detail: str = "Request took too long and was aborted"):
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=detail,
            error_code="REQUEST_TIMEOUT"
        )


class InternalServerError(APIException):
    """Internal server error exception."""

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="INTERNAL_SERVER_ERROR"
        )


class NotificationError(Exception):
    """
    Delivery failure inside the notification gateway.

    Not an API error by itself: callers decide whether it becomes a warning
    on a successful response or an UpstreamFailureError.
    """

    def __init__(self, channel: str, detail: str):
        super().__init__(f"{channel} delivery failed: {detail}")
        self.channel = channel
        self.detail = detail


class StorageError(Exception):
    """Blob store failure raised by a storage backend."""
