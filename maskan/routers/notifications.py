"""
WhatsApp listing broadcast endpoint.
"""

from fastapi import APIRouter, Depends
from maskan.schemas.common import MessageResponse
from maskan.schemas.error import COMMON_ERROR_RESPONSES
from maskan.schemas.notification import WhatsAppRequest
from maskan.services.notifications import WhatsAppSender, listing_broadcast
from maskan.utils.dependencies import get_whatsapp_sender
from maskan.utils.exceptions import NotificationError, UpstreamFailureError, ValidationError
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])


@router.post(
    "/whatsapp",
    response_model=MessageResponse,
    summary="Send a listing over WhatsApp",
    description="Sends a listing summary to the broker's WhatsApp number, "
                "falling back to the listing's and then the agent's number",
    responses={400: COMMON_ERROR_RESPONSES[400], 502: COMMON_ERROR_RESPONSES[502]}
)
async def send_whatsapp(
    request_data: WhatsAppRequest,
    sender: WhatsAppSender = Depends(get_whatsapp_sender)
) -> MessageResponse:
    listing = request_data.property
    destination = listing.destination()
    if not destination:
        raise ValidationError.for_field("property.broker.whatsapp", "A WhatsApp number is required")

    try:
        await sender.send(destination, listing_broadcast(listing.model_dump()))
    except NotificationError as e:
        logger.error(f"WhatsApp broadcast to {destination} failed: {e.detail}")
        raise UpstreamFailureError("Failed to send WhatsApp message") from e

    return MessageResponse(message="WhatsApp message sent successfully")
