# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service for the credential lifecycle.

This module provides the main AuthService that orchestrates:
- Login against a tenant domain
- Self-registration
- Token refresh
- Password change and reset
- Email verification

Sessions are stateless: nothing is stored server-side when tokens are issued,
and a refresh does not invalidate the refresh token it was given.

Single-use tokens (password reset, email verification) have the form
``<tenant_id>.<random>``. Only their SHA-256 hash is stored; the tenant
prefix keeps the lookup inside one tenant.

Example:
    >>> auth_service = AuthService(session, jwt_manager, hasher, settings.auth, notifier)
    >>> result = await auth_service.login("admin@demo.jiu-jitsu.com", "secret123", "demo.jiu-jitsu.com")
    >>> result.tokens.access_token
"""

import re
import secrets
from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import AuthSettings
from src.domains.auth.jwt import InvalidTokenError, JWTManager, TokenPair
from src.domains.auth.notifier import AuthNotifier, TokenDelivery, TokenPurpose
from src.domains.auth.password import PasswordHasher
from src.domains.authorization.roles import Role
from src.infrastructure.database.models.tenant import Tenant
from src.infrastructure.database.models.user import User, UserStatus
from src.infrastructure.database.repositories import (
    BranchRepository,
    DuplicateRecordError,
    InvalidReferenceError,
    TenantRepository,
    UserRepository,
)
from src.utils.datetime import ensure_utc, minutes_from_now, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)


class AuthError(Exception):
    """Base exception for the auth service."""

    pass


# Rejected credentials or sessions (401)


class AuthenticationError(AuthError):
    """Base exception for authentication errors."""

    pass


class InvalidTenantError(AuthenticationError):
    """Raised when the tenant domain is unknown or the tenant is inactive."""

    pass


class LicenseExpiredError(AuthenticationError):
    """Raised when the tenant's license window has ended."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Raised for an unknown email or a wrong password, indistinguishably."""

    pass


class AccountSuspendedError(AuthenticationError):
    """Raised when the account is suspended."""

    pass


class AccountInactiveError(AuthenticationError):
    """Raised when the account is not active."""

    pass


class TokenRefreshError(AuthenticationError):
    """Raised when token refresh fails."""

    pass


# Rejected requests (400)


class AuthRequestError(AuthError):
    """Base exception for requests the service refuses to carry out."""

    pass


class DuplicateUserError(AuthRequestError):
    """Raised when the email is already registered in the tenant."""

    pass


class InvalidRoleError(AuthRequestError):
    """Raised when self-registration asks for a role it may not have."""

    pass


class InvalidBranchError(AuthRequestError):
    """Raised when the branch is not a branch of the tenant."""

    pass


class IncorrectPasswordError(AuthRequestError):
    """Raised when the current password does not match on change."""

    pass


class InvalidResetTokenError(AuthRequestError):
    """Raised when a reset token is unknown, used or expired."""

    pass


class InvalidVerificationTokenError(AuthRequestError):
    """Raised when a verification token is unknown or used."""

    pass


class RegistrationData(NamedTuple):
    """Self-registration request."""

    email: str
    password: str
    first_name: str
    last_name: str
    role: Role
    tenant_domain: str
    branch_id: str | None = None
    phone: str | None = None


class AuthResult(NamedTuple):
    """Outcome of a login or registration."""

    user: User
    tenant: Tenant
    tokens: TokenPair


class AuthService:
    """Credential lifecycle orchestration.

    Attributes:
        _db: Database session for queries.
        _jwt_manager: Token codec.
        _password_hasher: bcrypt hasher.
        _settings: Auth settings.
        _notifier: Delivers single-use tokens to users.
        _users: User repository bound to the session.
        _tenants: Tenant repository bound to the session.
        _branches: Branch repository bound to the session.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        password_hasher: PasswordHasher,
        settings: AuthSettings,
        notifier: AuthNotifier,
    ) -> None:
        """Initialize the authentication service.

        Args:
            db: Async database session.
            jwt_manager: Token codec.
            password_hasher: bcrypt hasher.
            settings: Auth settings.
            notifier: Delivers verification and reset tokens.
        """
        self._db = db
        self._jwt_manager = jwt_manager
        self._password_hasher = password_hasher
        self._settings = settings
        self._notifier = notifier
        self._users = UserRepository(db)
        self._tenants = TenantRepository(db)
        self._branches = BranchRepository(db)

    async def login(self, email: str, password: str, tenant_domain: str) -> AuthResult:
        """Authenticate a user within a tenant.

        Args:
            email: Login email.
            password: Plain text password.
            tenant_domain: Domain of the tenant to log into.

        Returns:
            AuthResult with user, tenant and a fresh token pair.

        Raises:
            InvalidTenantError: If the domain is unknown or the tenant inactive.
            LicenseExpiredError: If the tenant's license has ended.
            InvalidCredentialsError: If the email is unknown or the password wrong.
            AccountSuspendedError: If the account is suspended.
            AccountInactiveError: If the account is inactive.
        """
        tenant = await self._resolve_tenant(tenant_domain)
        if ensure_utc(tenant.license_end) < utc_now():
            logger.info("login_rejected", reason="license_expired", tenant_id=tenant.id)
            raise LicenseExpiredError("Tenant license has expired")

        user = await self._users.find_by_email(email, tenant.id)

        # Unknown users still pay for one bcrypt comparison.
        password_ok = await self._password_hasher.verify_async(
            password,
            user.password_hash if user else None,
        )
        if user is None or not password_ok:
            logger.info("login_rejected", reason="invalid_credentials", tenant_id=tenant.id)
            raise InvalidCredentialsError("Invalid credentials")

        self._check_status(user)

        await self._record_login(user, password)

        tokens = self._issue_tokens(user)
        logger.info("login_succeeded", user_id=user.id, tenant_id=tenant.id, role=user.role)
        return AuthResult(user=user, tenant=tenant, tokens=tokens)

    async def register(self, data: RegistrationData) -> AuthResult:
        """Register a user and log them in.

        The account starts pending; tokens are issued right away and the
        verification token is sent through the notifier.

        Raises:
            InvalidTenantError: If the domain is unknown or the tenant inactive.
            InvalidRoleError: If the role may not be self-registered.
            InvalidBranchError: If the branch is not a branch of the tenant.
            DuplicateUserError: If the email is already registered in the tenant.
        """
        tenant = await self._resolve_tenant(data.tenant_domain)

        role = Role.parse(data.role)
        if role.value not in self._settings.registration_roles:
            raise InvalidRoleError(f"Role '{role.value}' cannot be self-registered")

        if data.branch_id and not await self._branches.exists(data.branch_id, tenant.id):
            raise InvalidBranchError("Branch not found")

        password_hash = await self._password_hasher.hash_async(data.password)
        verification_token = self._new_single_use_token(tenant.id)

        try:
            user = await self._users.create(
                {
                    "tenant_id": tenant.id,
                    "email": data.email,
                    "password_hash": password_hash,
                    "first_name": data.first_name,
                    "last_name": data.last_name,
                    "phone": data.phone,
                    "role": role.value,
                    "status": UserStatus.PENDING.value,
                    "branch_id": data.branch_id,
                    "email_verified": False,
                    "email_verification_token": self._jwt_manager.hash_token(verification_token),
                }
            )
        except DuplicateRecordError:
            raise DuplicateUserError("User already exists with this email") from None
        except InvalidReferenceError:
            raise InvalidBranchError("Branch not found") from None

        await self._db.commit()

        logger.info("user_registered", user_id=user.id, tenant_id=tenant.id, role=user.role)
        await self._deliver(TokenPurpose.EMAIL_VERIFICATION, user, verification_token)

        return AuthResult(user=user, tenant=tenant, tokens=self._issue_tokens(user))

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new token pair.

        The presented refresh token stays valid until it expires.

        Raises:
            TokenRefreshError: If the token is invalid or the user is gone.
            InvalidTenantError: If the tenant was deactivated.
            LicenseExpiredError: If the tenant's license has ended.
            AccountSuspendedError: If the account is suspended.
            AccountInactiveError: If the account is inactive.
        """
        try:
            claims = self._jwt_manager.verify_refresh_token(refresh_token)
        except InvalidTokenError:
            raise TokenRefreshError("Invalid refresh token") from None

        user = await self._users.find_by_id(claims.user_id, claims.tenant_id)
        if user is None:
            raise TokenRefreshError("Invalid refresh token")

        tenant = await self._tenants.find_by_id(claims.tenant_id, claims.tenant_id)
        if tenant is None or not tenant.is_active:
            raise InvalidTenantError("Invalid tenant")
        if ensure_utc(tenant.license_end) < utc_now():
            raise LicenseExpiredError("Tenant license has expired")

        self._check_status(user)

        logger.info("tokens_refreshed", user_id=user.id, tenant_id=user.tenant_id)
        return self._issue_tokens(user)

    async def change_password(
        self,
        user_id: str,
        tenant_id: str,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change the password of a logged-in user.

        Raises:
            InvalidCredentialsError: If the user no longer exists.
            IncorrectPasswordError: If the current password does not match.
        """
        user = await self._users.find_by_id(user_id, tenant_id)
        if user is None:
            raise InvalidCredentialsError("Invalid credentials")

        if not await self._password_hasher.verify_async(current_password, user.password_hash):
            raise IncorrectPasswordError("Current password is incorrect")

        password_hash = await self._password_hasher.hash_async(new_password)
        await self._users.update_password(user.id, tenant_id, password_hash)
        await self._db.commit()

        logger.info("password_changed", user_id=user.id, tenant_id=tenant_id)

    async def request_password_reset(self, email: str, tenant_domain: str) -> None:
        """Send a reset token if the account exists.

        Unknown tenants and unknown emails return silently.
        """
        tenant = await self._find_active_tenant(tenant_domain)
        if tenant is None:
            return

        user = await self._users.find_by_email(email, tenant.id)
        if user is None:
            return

        token = self._new_single_use_token(tenant.id)
        await self._users.set_password_reset_token(
            user.id,
            tenant.id,
            self._jwt_manager.hash_token(token),
            minutes_from_now(self._settings.password_reset_expire_minutes),
        )
        await self._db.commit()

        logger.info("password_reset_requested", user_id=user.id, tenant_id=tenant.id)
        await self._deliver(TokenPurpose.PASSWORD_RESET, user, token)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using a reset token.

        Raises:
            InvalidResetTokenError: If the token is unknown, used or expired.
        """
        tenant_id = self._tenant_of_token(token)
        if tenant_id is None:
            raise InvalidResetTokenError("Invalid or expired reset token")

        password_hash = await self._password_hasher.hash_async(new_password)
        user = await self._users.consume_password_reset_token(
            self._jwt_manager.hash_token(token),
            tenant_id,
            password_hash,
        )
        if user is None:
            raise InvalidResetTokenError("Invalid or expired reset token")

        await self._db.commit()
        logger.info("password_reset", user_id=user.id, tenant_id=tenant_id)

    async def verify_email(self, token: str) -> User:
        """Confirm an email address.

        Pending accounts become active.

        Raises:
            InvalidVerificationTokenError: If the token is unknown or used.
        """
        tenant_id = self._tenant_of_token(token)
        if tenant_id is None:
            raise InvalidVerificationTokenError("Invalid verification token")

        user = await self._users.verify_email(self._jwt_manager.hash_token(token), tenant_id)
        if user is None:
            raise InvalidVerificationTokenError("Invalid verification token")

        await self._db.commit()
        logger.info("email_verified", user_id=user.id, tenant_id=tenant_id)
        return user

    async def resend_email_verification(self, email: str, tenant_domain: str) -> None:
        """Issue a new verification token.

        Unknown tenants, unknown emails and verified accounts return silently.
        """
        tenant = await self._find_active_tenant(tenant_domain)
        if tenant is None:
            return

        user = await self._users.find_by_email(email, tenant.id)
        if user is None or user.email_verified:
            return

        token = self._new_single_use_token(tenant.id)
        await self._users.set_email_verification_token(
            user.id,
            tenant.id,
            self._jwt_manager.hash_token(token),
        )
        await self._db.commit()

        await self._deliver(TokenPurpose.EMAIL_VERIFICATION, user, token)

    async def get_profile(self, user_id: str, tenant_id: str) -> tuple[User, Tenant]:
        """Load the caller's user and tenant records.

        Raises:
            InvalidCredentialsError: If the user no longer exists.
        """
        user = await self._users.find_by_id(user_id, tenant_id)
        tenant = await self._tenants.find_by_id(tenant_id, tenant_id)
        if user is None or tenant is None:
            raise InvalidCredentialsError("Invalid credentials")
        return user, tenant

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    async def _find_active_tenant(self, tenant_domain: str) -> Tenant | None:
        domain = (tenant_domain or "").strip().lower()
        if not re.fullmatch(self._settings.tenant_domain_pattern, domain):
            return None
        tenant = await self._tenants.find_by_domain(domain)
        if tenant is None or not tenant.is_active:
            return None
        return tenant

    async def _resolve_tenant(self, tenant_domain: str) -> Tenant:
        tenant = await self._find_active_tenant(tenant_domain)
        if tenant is None:
            logger.info("tenant_rejected", tenant_domain=tenant_domain)
            raise InvalidTenantError("Invalid tenant")
        return tenant

    @staticmethod
    def _check_status(user: User) -> None:
        if user.status == UserStatus.SUSPENDED.value:
            raise AccountSuspendedError("Account is suspended")
        if user.status == UserStatus.INACTIVE.value:
            raise AccountInactiveError("Account is inactive")

    async def _record_login(self, user: User, password: str) -> None:
        """Store the last-login time and upgrade a hash made with another cost.

        Failures do not block the login.
        """
        rehashed = None
        if self._password_hasher.needs_rehash(user.password_hash):
            rehashed = await self._password_hasher.hash_async(password)

        # Detached so a rollback cannot expire the loaded user.
        self._db.expunge(user)
        try:
            updated = await self._users.update_last_login(user.id, user.tenant_id)
            if rehashed is not None:
                await self._users.update(user.id, user.tenant_id, {"password_hash": rehashed})
                logger.info("password_rehashed", user_id=user.id)
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.warning("last_login_update_failed", user_id=user.id, error=str(e))
            return

        if updated is not None:
            user.last_login = updated.last_login

    def _issue_tokens(self, user: User) -> TokenPair:
        return self._jwt_manager.create_token_pair(
            user_id=user.id,
            tenant_id=user.tenant_id,
            role=user.role,
            email=user.email,
            branch_id=user.branch_id,
        )

    @staticmethod
    def _new_single_use_token(tenant_id: str) -> str:
        return f"{tenant_id}.{secrets.token_urlsafe(32)}"

    @staticmethod
    def _tenant_of_token(token: str) -> str | None:
        tenant_id, sep, secret = (token or "").partition(".")
        if not sep or not secret or not re.fullmatch(r"[0-9a-fA-F-]{36}", tenant_id):
            return None
        return tenant_id

    async def _deliver(self, purpose: TokenPurpose, user: User, token: str) -> None:
        try:
            await self._notifier.send(
                TokenDelivery(
                    purpose=purpose,
                    tenant_id=user.tenant_id,
                    user_id=user.id,
                    email=user.email,
                    first_name=user.first_name,
                    token=token,
                )
            )
        except Exception:
            # Delivery can be retried through resend-verification / request-password-reset.
            logger.exception("token_delivery_failed", purpose=purpose.value, user_id=user.id)
