"""
Pydantic schemas for account requests and responses.
Covers signup, login, profile edits, email verification and password reset.
"""

from pydantic import Field, field_validator
from typing import Optional
from maskan.schemas.common import CamelModel


class SignupRequest(CamelModel):
    """Signup request schema. Field rules are enforced by the auth service."""

    name: str = Field(..., description="Display name", examples=["Ann"])
    email: str = Field(..., description="Email address, must be unique", examples=["ann@example.com"])
    password: str = Field(..., description="Password, at least 6 characters", examples=["secret1"])


class SignupResponse(CamelModel):
    token: str = Field(..., description="Bearer token valid for one hour")
    user_id: str = Field(..., description="New user's identifier")


class LoginRequest(CamelModel):
    """Login request schema."""

    email: str = Field(..., examples=["ann@example.com"])
    password: str = Field(..., examples=["secret1"])

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginResponse(CamelModel):
    """Token plus a profile summary."""

    token: str
    user_id: str
    username: str
    email: str
    is_verified: bool


class TokenResponse(CamelModel):
    token: str = Field(..., description="Fresh bearer token valid for one hour")


class ProfileUpdateRequest(CamelModel):
    """Partial profile update; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, examples=["Ann B."])
    email: Optional[str] = Field(None, examples=["ann.b@example.com"])
    password: Optional[str] = Field(None, description="New password, at least 6 characters")


class ProfileResponse(CamelModel):
    name: str
    email: str


class VerifyRequest(CamelModel):
    token: str = Field(..., description="Token from the verification email")


class VerificationStatusResponse(CamelModel):
    is_verified: bool


class NotificationResponse(CamelModel):
    """
    Result of a flow that sends a message.

    The state change is always committed; ``notification_sent`` is false and
    ``warning`` explains why when delivery failed, so the client can retry.
    """

    message: str
    notification_sent: bool = True
    warning: Optional[str] = None


class PasswordResetRequest(CamelModel):
    email: str = Field(..., examples=["ann@example.com"])


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., description="Token from the password reset email")
    new_password: str = Field(..., description="New password, at least 6 characters")
