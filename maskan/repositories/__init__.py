"""
Repository layer for data access operations.
Wraps async SQLAlchemy sessions with model-specific queries.
"""

from maskan.repositories.base import BaseRepository
from maskan.repositories.listing import ListingRepository
from maskan.repositories.profile import AgentProfileRepository, BrokerProfileRepository
from maskan.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "ListingRepository",
    "AgentProfileRepository",
    "BrokerProfileRepository",
    "UserRepository"
]
