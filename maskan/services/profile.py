"""
Profile service for agent and broker intake forms.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from maskan.models.profile import AgentProfile, BrokerProfile
from maskan.repositories.profile import AgentProfileRepository, BrokerProfileRepository
from maskan.schemas.profile import AgentProfileCreate, BrokerProfileCreate
from maskan.services.uploads import IncomingFile, UploadPipeline
from maskan.utils.exceptions import NotFoundError, UploadRejectedError
import logging

logger = logging.getLogger(__name__)


class ProfileService:
    """Stores agent and broker profiles with their uploaded photo or ID card."""

    def __init__(self, db_session: AsyncSession, uploads: UploadPipeline):
        self.db = db_session
        self.uploads = uploads
        self.agent_repo = AgentProfileRepository(db_session)
        self.broker_repo = BrokerProfileRepository(db_session)

    async def create_agent_profile(
        self,
        data: AgentProfileCreate,
        photo: Optional[IncomingFile] = None,
    ) -> AgentProfile:
        """
        Create an agent profile with an optional profile photo.

        Raises:
            UploadRejectedError: If the photo is not a valid image
            UpstreamFailureError: If the blob store fails
        """
        if photo is not None:
            self.uploads.validate_image(photo)

        batch = self.uploads.batch()
        stored = await batch.upload([photo] if photo else [], "agents")

        try:
            profile = await self.agent_repo.create({
                **data.model_dump(),
                "profile_photo_url": stored[0].url if stored else None,
            })
        except Exception:
            await batch.discard()
            raise

        logger.info(f"Created agent profile {profile.id} for {profile.agent_email}")
        return profile

    async def get_agent_by_email(self, email: str) -> AgentProfile:
        """
        Raises:
            NotFoundError: If no agent profile uses the email
        """
        profile = await self.agent_repo.get_by_email(email)
        if profile is None:
            raise NotFoundError("Agent")
        return profile

    async def create_broker_profile(
        self,
        data: BrokerProfileCreate,
        id_card: Optional[IncomingFile],
    ) -> BrokerProfile:
        """
        Create a broker profile; the RERA ID card (image or PDF) is required.

        Raises:
            UploadRejectedError: If the ID card is missing or invalid
            UpstreamFailureError: If the blob store fails
        """
        if id_card is None:
            raise UploadRejectedError("RERA ID card is required", field="reraIDCard")
        self.uploads.validate_image_or_document(id_card)

        batch = self.uploads.batch()
        stored = await batch.upload([id_card], "brokers")

        try:
            profile = await self.broker_repo.create({
                **data.model_dump(),
                "rera_id_card_url": stored[0].url,
            })
        except Exception:
            await batch.discard()
            raise

        logger.info(f"Created broker profile {profile.id} for RERA ID {profile.rera_broker_id}")
        return profile
