"""
Schemas for the WhatsApp listing broadcast endpoint.
"""

from pydantic import ConfigDict, Field
from typing import Any, Optional, Union
from maskan.schemas.common import CamelModel


class BroadcastContact(CamelModel):
    whatsapp: Optional[str] = None


class BroadcastProperty(CamelModel):
    """
    Listing summary sent by the client.

    The destination is the broker's WhatsApp number, falling back to the
    listing's own and then the agent's number.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    price: Any = ""
    city: str = ""
    location: str = ""
    property_type: str = ""
    beds: Any = ""
    broker: Optional[Union[BroadcastContact, str]] = None
    whatsapp: Optional[str] = None
    agent_whatsapp: Optional[str] = None

    def destination(self) -> Optional[str]:
        if isinstance(self.broker, BroadcastContact) and self.broker.whatsapp:
            return self.broker.whatsapp
        return self.whatsapp or self.agent_whatsapp


class WhatsAppRequest(CamelModel):
    property: BroadcastProperty = Field(..., description="Listing to broadcast")
