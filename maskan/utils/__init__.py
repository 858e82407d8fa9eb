"""
Utility modules for the Maskan Listings API.
"""

from .auth import TokenPayload, TokenService, generate_account_token

from .exceptions import (
    APIException,
    ValidationError,
    BadRequestError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    UploadRejectedError,
    UnauthorizedError,
    UnauthenticatedError,
    InvalidTokenError,
    ForbiddenError,
    ListingOwnershipError,
    NotFoundError,
    ListingNotFoundError,
    UpstreamFailureError,
    RequestTimeoutError,
    InternalServerError,
    NotificationError,
    StorageError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "TokenPayload",
    "TokenService",
    "generate_account_token",

    # Exceptions
    "APIException",
    "ValidationError",
    "BadRequestError",
    "DuplicateEmailError",
    "InvalidCredentialsError",
    "InvalidOrExpiredTokenError",
    "UploadRejectedError",
    "UnauthorizedError",
    "UnauthenticatedError",
    "InvalidTokenError",
    "ForbiddenError",
    "ListingOwnershipError",
    "NotFoundError",
    "ListingNotFoundError",
    "UpstreamFailureError",
    "RequestTimeoutError",
    "InternalServerError",
    "NotificationError",
    "StorageError",
]
