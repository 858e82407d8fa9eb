"""
User model with authentication and account token management.
Handles signup credentials, email verification, password reset and session tokens.
"""

from sqlalchemy import String, Boolean, Integer, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from maskan.database import Base
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from maskan.models.listing import Listing

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(Base):
    """
    User model for authentication and listing ownership.
    The owned listing index is the ``listings`` relationship.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address - must be unique and valid"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    # Email verification
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )

    verification_token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        index=True
    )

    verification_token_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Password reset
    reset_token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        index=True
    )

    reset_token_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Active session token
    auth_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    auth_token_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    token_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Bearer tokens carrying an older version are rejected"
    )

    # Relationships
    listings: Mapped[List["Listing"]] = relationship(
        "Listing",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
        order_by="Listing.created_at"
    )

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email={self.email})>"

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Args:
            email: Email address to validate

        Returns:
            Normalized email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email, check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    @classmethod
    def hash_password(cls, password: str) -> str:
        """
        Hash a password using bcrypt.

        Raises:
            ValueError: If the password is too short
        """
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        return pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return pwd_context.verify(password, self.hashed_password)

    def set_password(self, password: str) -> None:
        self.hashed_password = self.hash_password(password)

    def revoke_tokens(self) -> None:
        """Invalidate every bearer token issued so far."""
        self.token_version = (self.token_version or 0) + 1
        self.auth_token = None
        self.auth_token_expires = None

    def verification_token_is_live(self, now: datetime) -> bool:
        expires = _as_aware(self.verification_token_expires)
        return self.verification_token is not None and expires is not None and expires > now

    def reset_token_is_live(self, now: datetime) -> bool:
        expires = _as_aware(self.reset_token_expires)
        return self.reset_token is not None and expires is not None and expires > now

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excluding sensitive data).
        """
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "is_verified": self.is_verified,
        }
