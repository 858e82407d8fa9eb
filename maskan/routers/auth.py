"""
Account API endpoints: signup, login, session tokens, profile,
email verification and password reset.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from maskan.config import Settings
from maskan.models.user import User
from maskan.services.auth import AuthService
from maskan.schemas.auth import (
    SignupRequest,
    SignupResponse,
    LoginRequest,
    LoginResponse,
    TokenResponse,
    ProfileUpdateRequest,
    ProfileResponse,
    VerifyRequest,
    VerificationStatusResponse,
    NotificationResponse,
    PasswordResetRequest,
    ResetPasswordRequest,
)
from maskan.schemas.common import MessageResponse
from maskan.schemas.error import COMMON_ERROR_RESPONSES
from maskan.utils.dependencies import get_app_settings, get_auth_service, get_current_user


router = APIRouter(tags=["Accounts"])


def _notification_response(message: str, warning) -> NotificationResponse:
    return NotificationResponse(message=message, notification_sent=warning is None, warning=warning)


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Register with name, email and password; returns a bearer token",
    responses={400: COMMON_ERROR_RESPONSES[400]}
)
async def signup(
    signup_data: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> SignupResponse:
    user, token = await auth_service.signup(
        name=signup_data.name,
        email=signup_data.email,
        password=signup_data.password
    )
    return SignupResponse(token=token, user_id=str(user.id))


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate with email and password; returns a bearer token and profile summary",
    responses={400: COMMON_ERROR_RESPONSES[400]}
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    user, token = await auth_service.login(email=login_data.email, password=login_data.password)
    return LoginResponse(
        token=token,
        user_id=str(user.id),
        username=user.name,
        email=user.email,
        is_verified=user.is_verified
    )


@router.post(
    "/refresh-token",
    response_model=TokenResponse,
    summary="Refresh bearer token",
    responses={401: COMMON_ERROR_RESPONSES[401]}
)
async def refresh_token(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    return TokenResponse(token=await auth_service.refresh_token(current_user))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
    description="Revoke every bearer token issued to the current user",
    responses={401: COMMON_ERROR_RESPONSES[401]}
)
async def logout(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth_service.logout(current_user)
    return MessageResponse(message="Logged out")


@router.put(
    "/profile",
    response_model=ProfileResponse,
    summary="Update profile",
    description="Partially update name, email and password. Changing the password revokes existing tokens.",
    responses={400: COMMON_ERROR_RESPONSES[400], 401: COMMON_ERROR_RESPONSES[401]}
)
async def update_profile(
    profile_data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileResponse:
    user = await auth_service.update_profile(
        current_user,
        name=profile_data.name,
        email=profile_data.email,
        password=profile_data.password
    )
    return ProfileResponse(name=user.name, email=user.email)


@router.get(
    "/verify/status",
    response_model=VerificationStatusResponse,
    summary="Email verification status",
    responses={401: COMMON_ERROR_RESPONSES[401]}
)
async def verification_status(
    current_user: User = Depends(get_current_user)
) -> VerificationStatusResponse:
    return VerificationStatusResponse(is_verified=current_user.is_verified)


@router.post(
    "/verify/request",
    response_model=NotificationResponse,
    response_model_exclude_none=True,
    summary="Request a verification email",
    description="Stores a one-hour verification token and emails the link. "
                "A delivery failure is reported as a warning; the token stays valid.",
    responses={401: COMMON_ERROR_RESPONSES[401]}
)
async def request_verification(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> NotificationResponse:
    warning = await auth_service.request_verification(current_user)
    return _notification_response("Verification email sent", warning)


@router.post(
    "/verify",
    response_model=MessageResponse,
    summary="Verify email with a token",
    responses={400: COMMON_ERROR_RESPONSES[400]}
)
async def verify(
    verify_data: VerifyRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth_service.verify_email(verify_data.token)
    return MessageResponse(message="User verified successfully")


@router.get(
    "/verify/{token}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Verify email from the emailed link",
    description="Consumes the token and redirects to the front-end",
    responses={400: COMMON_ERROR_RESPONSES[400]}
)
async def verify_from_link(
    token: str,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings)
) -> RedirectResponse:
    await auth_service.verify_email(token)
    return RedirectResponse(url=f"{settings.frontend_url.rstrip('/')}/", status_code=status.HTTP_302_FOUND)


@router.post(
    "/password-reset-request",
    response_model=NotificationResponse,
    response_model_exclude_none=True,
    summary="Request a password reset email",
    responses={404: COMMON_ERROR_RESPONSES[404]}
)
async def request_password_reset(
    reset_data: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> NotificationResponse:
    warning = await auth_service.request_password_reset(reset_data.email)
    return _notification_response("Password reset email sent", warning)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with a token",
    responses={400: COMMON_ERROR_RESPONSES[400]}
)
async def reset_password(
    reset_data: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth_service.reset_password(reset_data.token, reset_data.new_password)
    return MessageResponse(message="Password has been reset")
