"""
Agent and broker profile records.
Collected through public intake forms; not linked to users or listings yet.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from maskan.database import Base
from typing import Optional


class AgentProfile(Base):
    """Real-estate agent contact card with an optional profile photo."""

    __tablename__ = "agent_profiles"

    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    agent_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)
    contact_whatsapp: Mapped[str] = mapped_column(String(50), nullable=False)
    profile_photo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    def __repr__(self) -> str:
        return f"<AgentProfile(id={self.id}, agent_email={self.agent_email})>"


class BrokerProfile(Base):
    """Brokerage registration with the scanned RERA ID card."""

    __tablename__ = "broker_profiles"

    rera_broker_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    company_license_number: Mapped[str] = mapped_column(String(120), nullable=False)
    company_telephone_number: Mapped[str] = mapped_column(String(50), nullable=False)
    rera_id_card_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    def __repr__(self) -> str:
        return f"<BrokerProfile(id={self.id}, rera_broker_id={self.rera_broker_id})>"
