"""
Pydantic schemas for request/response validation.
"""

# Account schemas
from .auth import (
    SignupRequest,
    SignupResponse,
    LoginRequest,
    LoginResponse,
    TokenResponse,
    ProfileUpdateRequest,
    ProfileResponse,
    VerifyRequest,
    VerificationStatusResponse,
    NotificationResponse,
    PasswordResetRequest,
    ResetPasswordRequest
)

# Listing schemas
from .listing import (
    ListingCreate,
    ListingUpdate,
    ListingResponse,
    ListingDeleteResponse
)

# Profile schemas
from .profile import (
    AgentProfileCreate,
    AgentProfileResponse,
    BrokerProfileCreate,
    BrokerProfileResponse
)

from .common import CamelModel, MessageResponse
from .error import ErrorResponse
from .notification import WhatsAppRequest

__all__ = [
    # Accounts
    "SignupRequest",
    "SignupResponse",
    "LoginRequest",
    "LoginResponse",
    "TokenResponse",
    "ProfileUpdateRequest",
    "ProfileResponse",
    "VerifyRequest",
    "VerificationStatusResponse",
    "NotificationResponse",
    "PasswordResetRequest",
    "ResetPasswordRequest",

    # Listings
    "ListingCreate",
    "ListingUpdate",
    "ListingResponse",
    "ListingDeleteResponse",

    # Profiles
    "AgentProfileCreate",
    "AgentProfileResponse",
    "BrokerProfileCreate",
    "BrokerProfileResponse",

    "CamelModel",
    "MessageResponse",
    "ErrorResponse",
    "WhatsAppRequest",
]
