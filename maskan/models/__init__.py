"""
Database models for the Maskan Listings API.
Includes User, Listing, ListingImage and the standalone profile models.
"""

from maskan.models.user import User
from maskan.models.listing import Listing, ListingPurpose, ListingStatus
from maskan.models.listing_image import ListingImage
from maskan.models.profile import AgentProfile, BrokerProfile

# Export all models for easy importing
__all__ = [
    "User",
    "Listing",
    "ListingPurpose",
    "ListingStatus",
    "ListingImage",
    "AgentProfile",
    "BrokerProfile",
]
