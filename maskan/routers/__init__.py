"""
API route handlers for the Maskan Listings API.
"""

from .auth import router as auth_router
from .listings import router as listings_router
from .profiles import router as profiles_router
from .notifications import router as notifications_router

__all__ = ["auth_router", "listings_router", "profiles_router", "notifications_router"]
