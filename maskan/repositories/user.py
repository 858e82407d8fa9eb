"""
User repository for credential lookups.
Finds users by email and by single-use account token.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from maskan.repositories.base import BaseRepository
from maskan.models.user import User
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user records."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address.

        Args:
            email: Email address, compared case-insensitively

        Returns:
            User instance if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def get_by_verification_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        result = await self.db.execute(select(User).where(User.verification_token == token))
        return result.scalar_one_or_none()

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        result = await self.db.execute(select(User).where(User.reset_token == token))
        return result.scalar_one_or_none()
