"""
Authentication service for accounts, bearer tokens and single-use account tokens.
Handles signup, login, session tokens, email verification, password reset and profile edits.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from jose import JWTError
from maskan.config import Settings
from maskan.models.user import User, MIN_PASSWORD_LENGTH
from maskan.repositories.user import UserRepository
from maskan.services.notifications import EmailSender, verification_email, password_reset_email
from maskan.utils.auth import TokenService, generate_account_token
from maskan.utils.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    NotificationError,
    ValidationError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Account flows on top of the user repository and the token service.

    Bearer tokens carry the user's ``token_version``; bumping the version
    (logout, password change, password reset) revokes every token issued
    before it.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        settings: Settings,
        token_service: TokenService,
        email_sender: EmailSender,
    ):
        self.db = db_session
        self.settings = settings
        self.tokens = token_service
        self.email_sender = email_sender
        self.user_repo = UserRepository(db_session)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _start_session(self, user: User) -> str:
        """Issue a bearer token and record it as the user's active session token."""
        now = self._now()
        token = self.tokens.issue(user.id, user.token_version or 0, now=now)
        user.auth_token = token
        user.auth_token_expires = self.tokens.expires_at(now)
        return token

    @staticmethod
    def _validate_signup(name: str, email: str, password: str) -> Tuple[str, str]:
        """
        Check signup fields, collecting every problem before failing.

        Returns:
            Tuple of (clean name, normalized email)

        Raises:
            ValidationError: With one entry per invalid field
        """
        errors: List[Dict[str, str]] = []

        clean_name = (name or "").strip()
        if not clean_name:
            errors.append({"field": "name", "message": "Name is required"})

        normalized_email = ""
        try:
            normalized_email = User.validate_email_format(email or "")
        except ValueError:
            errors.append({"field": "email", "message": "Please enter a valid email"})

        if not password or len(password) < MIN_PASSWORD_LENGTH:
            errors.append({
                "field": "password",
                "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            })

        if errors:
            raise ValidationError("Validation failed", field_errors=errors)

        return clean_name, normalized_email

    async def signup(self, name: str, email: str, password: str) -> Tuple[User, str]:
        """
        Register a user and open a session.

        Returns:
            Tuple of (created user, bearer token)

        Raises:
            ValidationError: If name, email or password is invalid
            DuplicateEmailError: If the email is already registered
        """
        clean_name, normalized_email = self._validate_signup(name, email, password)

        if await self.user_repo.email_exists(normalized_email):
            logger.warning(f"Signup attempt with registered email: {normalized_email}")
            raise DuplicateEmailError()

        user = User(
            id=uuid.uuid4(),
            name=clean_name,
            email=normalized_email,
            hashed_password=User.hash_password(password),
            is_verified=False,
            token_version=0,
        )
        token = self._start_session(user)

        try:
            user = await self.user_repo.add(user)
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            raise DuplicateEmailError()

        logger.info(f"User signed up: {user.email} (ID: {user.id})")
        return user, token

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Authenticate with email and password and open a new session.

        Raises:
            InvalidCredentialsError: Same error for unknown email and wrong password
        """
        user = await self.user_repo.get_by_email(email or "")

        if user is None or not password or not self._password_matches(user, password):
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        token = self._start_session(user)
        await self.user_repo.save(user)

        logger.info(f"User authenticated successfully: {user.email}")
        return user, token

    @staticmethod
    def _password_matches(user: User, password: str) -> bool:
        try:
            return user.verify_password(password)
        except ValueError:
            # Unparseable stored hash
            logger.error(f"Stored password hash for user {user.id} is unreadable")
            return False

    async def refresh_token(self, user: User) -> str:
        """Issue a fresh bearer token for an authenticated user."""
        token = self._start_session(user)
        await self.user_repo.save(user)
        return token

    async def logout(self, user: User) -> None:
        """Revoke every bearer token of the user."""
        user.revoke_tokens()
        await self.user_repo.save(user)
        logger.info(f"User logged out: {user.email}")

    async def get_user_from_token(self, token: str) -> User:
        """
        Resolve the user a bearer token belongs to.

        Raises:
            InvalidTokenError: If the token fails verification, names no
                existing user, or was revoked by a token version bump
        """
        try:
            payload = self.tokens.verify(token)
        except JWTError as e:
            logger.debug(f"Rejected bearer token: {e}")
            raise InvalidTokenError()

        user = await self.user_repo.get_by_id(uuid.UUID(payload.user_id))
        if user is None:
            logger.warning(f"Bearer token for unknown user {payload.user_id}")
            raise InvalidTokenError()

        if payload.version != (user.token_version or 0):
            logger.debug(f"Revoked bearer token used for user {user.id}")
            raise InvalidTokenError()

        return user

    async def _deliver(self, to: str, subject: str, text: str) -> Optional[str]:
        """Send an account email; returns a warning instead of raising on failure."""
        try:
            await self.email_sender.send(to, subject, text)
        except NotificationError as e:
            logger.warning(f"Account email to {to} not delivered: {e}")
            return f"Email could not be sent: {e.detail}"
        return None

    async def request_verification(self, user: User) -> Optional[str]:
        """
        Store a fresh verification token and email the link.

        The token is committed before sending, so a delivery failure never
        undoes it.

        Returns:
            Warning text when the email could not be delivered, else None
        """
        user.verification_token = generate_account_token()
        user.verification_token_expires = self._now() + timedelta(
            minutes=self.settings.verification_token_expire_minutes
        )
        await self.user_repo.save(user)

        subject, text = verification_email(self.settings.frontend_url, user.verification_token)
        return await self._deliver(user.email, subject, text)

    async def verify_email(self, token: str) -> User:
        """
        Consume a verification token.

        Raises:
            InvalidOrExpiredTokenError: If no user holds the token inside its window
        """
        user = await self.user_repo.get_by_verification_token(token)
        if user is None or not user.verification_token_is_live(self._now()):
            raise InvalidOrExpiredTokenError()

        user.is_verified = True
        user.verification_token = None
        user.verification_token_expires = None
        await self.user_repo.save(user)

        logger.info(f"Email verified for user {user.id}")
        return user

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Store a reset token for the account and email the link.

        Raises:
            NotFoundError: If no account uses the email
        """
        user = await self.user_repo.get_by_email(email or "")
        if user is None:
            raise NotFoundError("User")

        user.reset_token = generate_account_token()
        user.reset_token_expires = self._now() + timedelta(
            minutes=self.settings.reset_token_expire_minutes
        )
        await self.user_repo.save(user)

        subject, text = password_reset_email(self.settings.frontend_url, user.reset_token)
        return await self._deliver(user.email, subject, text)

    async def reset_password(self, token: str, new_password: str) -> User:
        """
        Consume a reset token and replace the password.

        Raises:
            ValidationError: If the new password is too short
            InvalidOrExpiredTokenError: If the token is unknown, used or expired
        """
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError.for_field(
                "newPassword", f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        user = await self.user_repo.get_by_reset_token(token)
        if user is None or not user.reset_token_is_live(self._now()):
            raise InvalidOrExpiredTokenError()

        user.set_password(new_password)
        user.reset_token = None
        user.reset_token_expires = None
        user.revoke_tokens()
        await self.user_repo.save(user)

        logger.info(f"Password reset for user {user.id}")
        return user

    async def update_profile(
        self,
        user: User,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        """
        Partially update name, email and password. Blank values leave a field unchanged.

        A new password is hashed and revokes existing bearer tokens.

        Raises:
            ValidationError: If a provided field is invalid
            DuplicateEmailError: If the new email belongs to another account
        """
        if name and name.strip():
            user.name = name.strip()

        if email and email.strip():
            try:
                normalized_email = User.validate_email_format(email)
            except ValueError:
                raise ValidationError.for_field("email", "Please enter a valid email")

            if normalized_email != user.email:
                if await self.user_repo.email_exists(normalized_email):
                    raise DuplicateEmailError()
                user.email = normalized_email

        if password:
            try:
                user.set_password(password)
            except ValueError as e:
                raise ValidationError.for_field("password", str(e))
            user.revoke_tokens()

        try:
            user = await self.user_repo.save(user)
        except IntegrityError:
            raise DuplicateEmailError()

        logger.info(f"Profile updated for user {user.id}")
        return user
