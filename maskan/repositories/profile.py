"""
Repositories for standalone agent and broker profiles.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from maskan.repositories.base import BaseRepository
from maskan.models.profile import AgentProfile, BrokerProfile
from typing import Optional


class AgentProfileRepository(BaseRepository[AgentProfile]):

    def __init__(self, db: AsyncSession):
        super().__init__(AgentProfile, db)

    async def get_by_email(self, email: str) -> Optional[AgentProfile]:
        """Oldest agent profile registered with ``email``."""
        return await self.get_by_field("agent_email", email.strip().lower())


class BrokerProfileRepository(BaseRepository[BrokerProfile]):

    def __init__(self, db: AsyncSession):
        super().__init__(BrokerProfile, db)
