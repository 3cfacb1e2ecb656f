# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API schemas.

Request and response bodies use camelCase names (``tenantDomain``,
``accessToken``); nested user and tenant records keep their column names.
"""

from pydantic import EmailStr, Field

from src.domains.authorization.roles import Role
from src.models.common import CamelModel
from src.models.tenant import TenantResponse
from src.models.user import UserResponse


class LoginRequest(CamelModel):
    """Login credentials."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    tenant_domain: str = Field(min_length=3, max_length=255)


class RegisterRequest(CamelModel):
    """Self-registration request."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    role: Role
    tenant_domain: str = Field(min_length=3, max_length=255)
    branch_id: str | None = None


class RefreshRequest(CamelModel):
    """Token refresh request."""

    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(CamelModel):
    """Password change for the logged-in user."""

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


class PasswordResetRequest(CamelModel):
    """Request for a password reset token."""

    email: EmailStr
    tenant_domain: str = Field(min_length=3, max_length=255)


class ResetPasswordRequest(CamelModel):
    """New password plus the reset token."""

    token: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class ResendVerificationRequest(CamelModel):
    """Request for a new verification token."""

    email: EmailStr
    tenant_domain: str = Field(min_length=3, max_length=255)


class TokenResponse(CamelModel):
    """Fresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class AuthResponse(CamelModel):
    """Login or registration outcome."""

    user: UserResponse
    tenant: TenantResponse
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class ProfileResponse(CamelModel):
    """Current user and tenant."""

    user: UserResponse
    tenant: TenantResponse
