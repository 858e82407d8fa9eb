"""
Pydantic schemas for agent and broker profile intake.
"""

from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime
from maskan.models.profile import AgentProfile, BrokerProfile
from maskan.models.user import User
from maskan.schemas.common import CamelModel


class AgentProfileCreate(CamelModel):
    agent_name: str = Field(..., min_length=1, max_length=255)
    agent_email: str = Field(..., max_length=255)
    contact_number: str = Field(..., min_length=1, max_length=50)
    contact_whatsapp: str = Field(..., alias="contactWhatsApp", min_length=1, max_length=50)

    @field_validator("agent_name", "contact_number", "contact_whatsapp", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("agent_email")
    @classmethod
    def validate_agent_email(cls, v):
        return User.validate_email_format(v)


class AgentProfileResponse(CamelModel):
    id: str
    agent_name: str
    agent_email: str
    contact_number: str
    contact_whatsapp: str = Field(..., alias="contactWhatsApp")
    profile_photo: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_profile(cls, profile: AgentProfile) -> "AgentProfileResponse":
        return cls(
            id=str(profile.id),
            agent_name=profile.agent_name,
            agent_email=profile.agent_email,
            contact_number=profile.contact_number,
            contact_whatsapp=profile.contact_whatsapp,
            profile_photo=profile.profile_photo_url,
            created_at=profile.created_at,
        )


class BrokerProfileCreate(CamelModel):
    """Broker registration fields; the RERA ID card arrives as a file part."""

    rera_broker_id: str = Field(..., alias="reraBrokerID", min_length=1, max_length=120)
    company_license_number: str = Field(..., min_length=1, max_length=120)
    company_telephone_number: str = Field(..., min_length=1, max_length=50)

    @field_validator("*", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class BrokerProfileResponse(CamelModel):
    id: str
    rera_broker_id: str = Field(..., alias="reraBrokerID")
    company_license_number: str
    company_telephone_number: str
    rera_id_card_url: str = Field(..., alias="reraIDCardUrl")
    created_at: datetime

    @classmethod
    def from_profile(cls, profile: BrokerProfile) -> "BrokerProfileResponse":
        return cls(
            id=str(profile.id),
            rera_broker_id=profile.rera_broker_id,
            company_license_number=profile.company_license_number,
            company_telephone_number=profile.company_telephone_number,
            rera_id_card_url=profile.rera_id_card_url,
            created_at=profile.created_at,
        )
