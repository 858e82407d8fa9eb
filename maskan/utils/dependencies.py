"""
FastAPI dependency injection utilities for authentication and services.
Shared collaborators live on ``app.state``; services are built per request.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from maskan.config import Settings
from maskan.database import get_db
from maskan.models.listing import Listing
from maskan.models.user import User
from maskan.services.auth import AuthService
from maskan.services.listing import ListingService
from maskan.services.notifications import WhatsAppSender
from maskan.services.profile import ProfileService
from maskan.services.uploads import UploadPipeline
from maskan.utils.exceptions import UnauthenticatedError


# HTTP Bearer token security scheme; a missing header is reported by get_current_user
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upload_pipeline(request: Request) -> UploadPipeline:
    return request.app.state.upload_pipeline


def get_whatsapp_sender(request: Request) -> WhatsAppSender:
    return request.app.state.whatsapp_sender


async def get_auth_service(request: Request, db: AsyncSession = Depends(get_db)) -> AuthService:
    """
    Get authentication service instance.

    Args:
        request: Incoming request, used to reach application state
        db: Database session

    Returns:
        AuthService instance
    """
    state = request.app.state
    return AuthService(db, state.settings, state.token_service, state.email_sender)


async def get_listing_service(request: Request, db: AsyncSession = Depends(get_db)) -> ListingService:
    state = request.app.state
    return ListingService(db, state.settings, state.upload_pipeline)


async def get_profile_service(request: Request, db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db, request.app.state.upload_pipeline)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from the bearer token.

    Args:
        credentials: HTTP Bearer credentials
        auth_service: Authentication service

    Returns:
        Current User object

    Raises:
        UnauthenticatedError: If no bearer token was sent
        InvalidTokenError: If the token is invalid, expired, revoked or
            names no existing user
    """
    if not credentials or not credentials.credentials:
        raise UnauthenticatedError()

    return await auth_service.get_user_from_token(credentials.credentials)


async def get_owned_listing(
    listing_id: str,
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> Listing:
    """
    Resolve the listing named in the path and check the caller owns it.

    Runs before the route reads its multipart body, so unknown listings and
    non-owners are turned away without buffering uploads.

    Raises:
        ListingNotFoundError: If the listing does not exist
        ListingOwnershipError: If the caller is not the owner
    """
    return await listing_service.get_owned_listing(listing_id, current_user)
