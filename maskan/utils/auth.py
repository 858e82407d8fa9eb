"""
Authentication utilities for JWT token management and account tokens.
Provides bearer token issuance and validation plus single-use token generation.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from maskan.config import Settings
import secrets
import uuid


class TokenPayload:
    """JWT token payload structure."""

    def __init__(self, user_id: str, version: int, exp: datetime):
        self.user_id = user_id
        self.version = version
        self.exp = exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from dictionary."""
        return cls(
            user_id=data["sub"],
            version=int(data.get("ver", 0)),
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )


class TokenService:
    """
    Issues and verifies signed, time-limited bearer tokens.
    Tokens carry the user id and the user's token version.
    """

    TOKEN_TYPE = "access"

    def __init__(self, settings: Settings):
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.lifetime = timedelta(minutes=settings.access_token_expire_minutes)

    def issue(
        self,
        user_id: uuid.UUID,
        token_version: int = 0,
        now: Optional[datetime] = None
    ) -> str:
        """
        Create JWT access token for a user.

        Args:
            user_id: User's UUID
            token_version: Current token version of the user
            now: Issue time, defaults to the current UTC time

        Returns:
            Encoded JWT token string
        """
        issued_at = now or datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user_id),  # Subject (user ID)
            "ver": token_version,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
            "type": self.TOKEN_TYPE
        }

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def expires_at(self, issued_at: Optional[datetime] = None) -> datetime:
        return (issued_at or datetime.now(timezone.utc)) + self.lifetime

    def verify(self, token: str) -> TokenPayload:
        """
        Verify and decode JWT token.

        Raises:
            JWTError: If token is malformed, badly signed, of the wrong type or expired
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise
        except Exception as e:
            raise JWTError(f"Token validation error: {str(e)}")

        if payload.get("type") != self.TOKEN_TYPE:
            raise JWTError(f"Invalid token type. Expected {self.TOKEN_TYPE}")

        # jose checks exp already; keep the explicit check for tokens without one
        exp_timestamp = payload.get("exp")
        if not exp_timestamp or datetime.fromtimestamp(exp_timestamp, tz=timezone.utc) <= datetime.now(timezone.utc):
            raise JWTError("Token has expired")

        user_id = payload.get("sub")
        if not user_id:
            raise JWTError("Invalid token payload")
        try:
            uuid.UUID(user_id)
        except ValueError:
            raise JWTError("Invalid subject in token")

        return TokenPayload.from_dict(payload)


def generate_account_token() -> str:
    """High-entropy single-use token for email verification and password reset."""
    return secrets.token_hex(32)

