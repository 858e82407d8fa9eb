"""
Service layer for business logic implementation.
Contains services for accounts, listings, profiles, uploads, notifications and error handling.
"""

from .auth import AuthService
from .listing import ListingService
from .profile import ProfileService
from .uploads import UploadPipeline
from .notifications import EmailSender, WhatsAppSender
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "ListingService",
    "ProfileService",
    "UploadPipeline",
    "EmailSender",
    "WhatsAppSender",
    "ErrorHandlerService"
]
