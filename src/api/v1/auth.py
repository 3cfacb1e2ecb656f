# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for the credential lifecycle:
- POST /login - Log in to a tenant
- POST /register - Self-registration
- POST /refresh - Exchange a refresh token for a new token pair
- POST /logout - Acknowledge logout (sessions are stateless)
- GET /me - Current user and tenant
- POST /change-password - Change the caller's password
- POST /request-password-reset - Send a reset token
- POST /reset-password - Set a new password with a reset token
- GET /verify-email/{token} - Confirm an email address
- POST /resend-verification - Send a new verification token

Login, registration and the token-request endpoints are rate limited per
client IP.

Example:
    POST /api/v1/auth/login
    Body:
        {
            "email": "admin@demo.jiu-jitsu.com",
            "password": "secret123",
            "tenantDomain": "demo.jiu-jitsu.com"
        }
"""

import logging

from fastapi import APIRouter, Depends, status

from src.api.dependencies import Auth, AuthenticatedUser
from src.api.errors import APIError, auth_http_error
from src.api.middleware.rate_limit import limit_auth_requests
from src.domains.auth.jwt import TokenPair
from src.domains.auth.service import AuthError, AuthResult, InvalidTenantError, RegistrationData
from src.models.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetRequest,
    ProfileResponse,
    RefreshRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from src.models.common import ApiResponse, MessageResponse
from src.models.tenant import TenantResponse
from src.models.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# Same answer whether or not the account exists.
RESET_REQUESTED_MESSAGE = "If the account exists, a password reset link has been sent"
VERIFICATION_SENT_MESSAGE = "If the account exists and is not verified, a verification email has been sent"


def _to_auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        tenant=TenantResponse.model_validate(result.tenant),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        token_type=result.tokens.token_type,
        expires_in=result.tokens.expires_in,
    )


def _to_token_response(tokens: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
    )


@router.post(
    "/login",
    dependencies=[Depends(limit_auth_requests)],
    response_model=ApiResponse[AuthResponse],
    summary="Log in",
    description="Authenticate with email and password within a tenant domain.",
)
async def login(
    data: LoginRequest,
    auth_service: Auth,
) -> ApiResponse[AuthResponse]:
    """Log in to a tenant.

    Args:
        data: Login credentials.
        auth_service: Auth service.

    Returns:
        User, tenant and a token pair.

    Raises:
        APIError: 401 for unknown tenant, expired license, bad credentials
            or a blocked account.
    """
    try:
        result = await auth_service.login(data.email, data.password, data.tenant_domain)
    except AuthError as e:
        raise auth_http_error(e) from e

    return ApiResponse(data=_to_auth_response(result), message="Login successful")


@router.post(
    "/register",
    dependencies=[Depends(limit_auth_requests)],
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a pending account in a tenant and log it in.",
)
async def register(
    data: RegisterRequest,
    auth_service: Auth,
) -> ApiResponse[AuthResponse]:
    """Register a user.

    Raises:
        APIError: 400 for an unknown tenant, a taken email, a role that
            cannot be self-registered or a foreign branch.
    """
    try:
        result = await auth_service.register(
            RegistrationData(
                email=data.email,
                password=data.password,
                first_name=data.first_name,
                last_name=data.last_name,
                role=data.role,
                tenant_domain=data.tenant_domain,
                branch_id=data.branch_id,
                phone=data.phone,
            )
        )
    except InvalidTenantError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, str(e), "invalid_tenant") from e
    except AuthError as e:
        raise auth_http_error(e) from e

    return ApiResponse(data=_to_auth_response(result), message="Registration successful")


@router.post(
    "/refresh",
    response_model=ApiResponse[TokenResponse],
    summary="Refresh tokens",
    description="Exchange a refresh token for a new token pair. The old refresh token stays valid until it expires.",
)
async def refresh(data: RefreshRequest, auth_service: Auth) -> ApiResponse[TokenResponse]:
    """Refresh the token pair.

    Raises:
        APIError: 401 if the refresh token is invalid or the account blocked.
    """
    try:
        tokens = await auth_service.refresh_tokens(data.refresh_token)
    except AuthError as e:
        raise auth_http_error(e) from e

    return ApiResponse(data=_to_token_response(tokens))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
    description="Acknowledge a logout. Tokens are not revoked; clients discard them.",
)
async def logout(current_user: AuthenticatedUser) -> MessageResponse:
    logger.info("User logged out: %s", current_user.user_id)
    return MessageResponse(message="Logout successful")


@router.get(
    "/me",
    response_model=ApiResponse[ProfileResponse],
    summary="Current user",
    description="Return the authenticated user and their tenant.",
)
async def me(current_user: AuthenticatedUser, auth_service: Auth) -> ApiResponse[ProfileResponse]:
    try:
        user, tenant = await auth_service.get_profile(current_user.user_id, current_user.tenant_id)
    except AuthError as e:
        raise auth_http_error(e) from e

    return ApiResponse(
        data=ProfileResponse(
            user=UserResponse.model_validate(user),
            tenant=TenantResponse.model_validate(tenant),
        )
    )


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Change the password of the authenticated user.",
)
async def change_password(
    data: ChangePasswordRequest,
    current_user: AuthenticatedUser,
    auth_service: Auth,
) -> MessageResponse:
    """Change the caller's password.

    Raises:
        APIError: 400 if the current password is wrong.
    """
    try:
        await auth_service.change_password(
            current_user.user_id,
            current_user.tenant_id,
            data.current_password,
            data.new_password,
        )
    except AuthError as e:
        raise auth_http_error(e) from e

    return MessageResponse(message="Password changed successfully")


@router.post(
    "/request-password-reset",
    dependencies=[Depends(limit_auth_requests)],
    response_model=MessageResponse,
    summary="Request password reset",
    description="Send a password reset token. The response does not reveal whether the account exists.",
)
async def request_password_reset(
    data: PasswordResetRequest,
    auth_service: Auth,
) -> MessageResponse:
    await auth_service.request_password_reset(data.email, data.tenant_domain)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password",
    description="Set a new password using a reset token. Each token works once.",
)
async def reset_password(data: ResetPasswordRequest, auth_service: Auth) -> MessageResponse:
    """Reset a password.

    Raises:
        APIError: 400 if the token is unknown, used or expired.
    """
    try:
        await auth_service.reset_password(data.token, data.new_password)
    except AuthError as e:
        raise auth_http_error(e) from e

    return MessageResponse(message="Password reset successfully")


@router.get(
    "/verify-email/{token}",
    response_model=ApiResponse[UserResponse],
    summary="Verify email",
    description="Confirm an email address. Pending accounts become active.",
)
async def verify_email(token: str, auth_service: Auth) -> ApiResponse[UserResponse]:
    """Verify an email address.

    Raises:
        APIError: 400 if the token is unknown or used.
    """
    try:
        user = await auth_service.verify_email(token)
    except AuthError as e:
        raise auth_http_error(e) from e

    return ApiResponse(data=UserResponse.model_validate(user), message="Email verified successfully")


@router.post(
    "/resend-verification",
    dependencies=[Depends(limit_auth_requests)],
    response_model=MessageResponse,
    summary="Resend verification email",
    description="Send a new verification token. The response does not reveal whether the account exists.",
)
async def resend_verification(
    data: ResendVerificationRequest,
    auth_service: Auth,
) -> MessageResponse:
    await auth_service.resend_email_verification(data.email, data.tenant_domain)
    return MessageResponse(message=VERIFICATION_SENT_MESSAGE)
