# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Provides the token codec, password hashing, token delivery and the
credential lifecycle service.
"""

from src.domains.auth.jwt import (
    AccessClaims,
    InvalidTokenError,
    JWTError,
    JWTManager,
    RefreshClaims,
    TokenPair,
)
from src.domains.auth.notifier import AuthNotifier, LoggingNotifier, TokenDelivery, TokenPurpose
from src.domains.auth.password import PasswordHasher
from src.domains.auth.service import (
    AccountInactiveError,
    AccountSuspendedError,
    AuthenticationError,
    AuthError,
    AuthRequestError,
    AuthResult,
    AuthService,
    DuplicateUserError,
    IncorrectPasswordError,
    InvalidBranchError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    InvalidRoleError,
    InvalidTenantError,
    InvalidVerificationTokenError,
    LicenseExpiredError,
    RegistrationData,
    TokenRefreshError,
)

__all__ = [
    "AccessClaims",
    "AccountInactiveError",
    "AccountSuspendedError",
    "AuthError",
    "AuthNotifier",
    "AuthRequestError",
    "AuthResult",
    "AuthService",
    "AuthenticationError",
    "DuplicateUserError",
    "IncorrectPasswordError",
    "InvalidBranchError",
    "InvalidCredentialsError",
    "InvalidResetTokenError",
    "InvalidRoleError",
    "InvalidTenantError",
    "InvalidTokenError",
    "InvalidVerificationTokenError",
    "JWTError",
    "JWTManager",
    "LicenseExpiredError",
    "LoggingNotifier",
    "PasswordHasher",
    "RefreshClaims",
    "RegistrationData",
    "TokenDelivery",
    "TokenPair",
    "TokenPurpose",
    "TokenRefreshError",
]
