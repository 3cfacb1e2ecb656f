# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides JWT token creation and validation using python-jose.
Access tokens and refresh tokens are signed with two different secrets and
carry an explicit ``type`` discriminator, so neither can be replayed as the
other.

Every verification failure (malformed, bad signature, expired, wrong issuer,
wrong audience, wrong type) is reported as a single InvalidTokenError. The
specific reason is only logged at DEBUG level.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> tokens = jwt_manager.create_token_pair(user_id="user-123", ...)
    >>> claims = jwt_manager.verify_access_token(tokens.access_token)
"""

import hashlib
import logging
import secrets
from typing import Any, Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from jose.exceptions import JWTClaimsError
from pydantic import BaseModel, ValidationError

from src.core.config.settings import JWTSettings
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


class AccessClaims(BaseModel):
    """Verified access token claims.

    Attributes:
        user_id: Subject user ID.
        tenant_id: Tenant the user belongs to.
        role: Role name at the time the token was issued.
        email: User email address.
        branch_id: Optional branch the user is attached to.
        iat: Issued at timestamp.
        exp: Expiration timestamp.
        jti: JWT ID.
    """

    user_id: str
    tenant_id: str
    role: str
    email: str
    branch_id: str | None = None
    iat: int
    exp: int
    jti: str


class RefreshClaims(BaseModel):
    """Verified refresh token claims."""

    user_id: str
    tenant_id: str
    iat: int
    exp: int
    jti: str


class TokenPair(BaseModel):
    """Access and refresh token pair.

    Attributes:
        access_token: JWT access token string.
        refresh_token: JWT refresh token string.
        token_type: Token type (always "Bearer").
        expires_in: Access token expiration in seconds.
        refresh_expires_in: Refresh token expiration in seconds.
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token cannot be accepted, whatever the reason."""

    pass


class JWTManager:
    """Token codec for access and refresh tokens.

    Attributes:
        _settings: JWT configuration settings.

    Example:
        >>> jwt_manager = JWTManager(settings)
        >>> tokens = jwt_manager.create_token_pair(
        ...     user_id="user-123",
        ...     tenant_id="tenant-456",
        ...     role="coach",
        ...     email="coach@demo.jiu-jitsu.com",
        ... )
        >>> claims = jwt_manager.verify_access_token(tokens.access_token)
        >>> claims.role
        'coach'
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    @property
    def access_token_ttl_seconds(self) -> int:
        """Access token lifetime in seconds."""
        return int(self._settings.access_token_lifetime.total_seconds())

    @property
    def refresh_token_ttl_seconds(self) -> int:
        """Refresh token lifetime in seconds."""
        return int(self._settings.refresh_token_lifetime.total_seconds())

    def issue_access_token(
        self,
        user_id: str,
        tenant_id: str,
        role: str,
        email: str,
        branch_id: str | None = None,
    ) -> str:
        """Create a signed access token.

        Args:
            user_id: User identifier.
            tenant_id: Tenant identifier.
            role: Role name.
            email: User email address.
            branch_id: Optional branch identifier.

        Returns:
            JWT access token string.
        """
        payload: dict[str, Any] = {
            "userId": str(user_id),
            "tenantId": str(tenant_id),
            "role": str(role),
            "email": email,
            "type": "access",
        }
        if branch_id:
            payload["branchId"] = str(branch_id)

        return self._encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            self.access_token_ttl_seconds,
        )

    def issue_refresh_token(self, user_id: str, tenant_id: str) -> str:
        """Create a signed refresh token.

        Args:
            user_id: User identifier.
            tenant_id: Tenant identifier.

        Returns:
            JWT refresh token string.
        """
        payload = {
            "userId": str(user_id),
            "tenantId": str(tenant_id),
            "type": "refresh",
        }
        return self._encode(
            payload,
            self._settings.refresh_secret_key.get_secret_value(),
            self.refresh_token_ttl_seconds,
        )

    def create_token_pair(
        self,
        user_id: str,
        tenant_id: str,
        role: str,
        email: str,
        branch_id: str | None = None,
    ) -> TokenPair:
        """Create an access and refresh token pair.

        Returns:
            TokenPair with access and refresh tokens.
        """
        return TokenPair(
            access_token=self.issue_access_token(
                user_id=user_id,
                tenant_id=tenant_id,
                role=role,
                email=email,
                branch_id=branch_id,
            ),
            refresh_token=self.issue_refresh_token(user_id, tenant_id),
            token_type="Bearer",
            expires_in=self.access_token_ttl_seconds,
            refresh_expires_in=self.refresh_token_ttl_seconds,
        )

    def verify_access_token(self, token: str) -> AccessClaims:
        """Verify an access token and return its claims.

        Args:
            token: JWT token string.

        Returns:
            AccessClaims with decoded claims.

        Raises:
            InvalidTokenError: If the token is not an acceptable access token.
        """
        payload = self._decode(
            token,
            self._settings.secret_key.get_secret_value(),
            expected_type="access",
        )
        try:
            return AccessClaims(
                user_id=payload["userId"],
                tenant_id=payload["tenantId"],
                role=payload["role"],
                email=payload["email"],
                branch_id=payload.get("branchId"),
                iat=payload["iat"],
                exp=payload["exp"],
                jti=payload["jti"],
            )
        except (KeyError, ValidationError) as e:
            logger.debug("Access token rejected: missing or malformed claims (%s)", e)
            raise InvalidTokenError("Invalid token") from None

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        """Verify a refresh token and return its claims.

        Args:
            token: JWT token string.

        Returns:
            RefreshClaims with decoded claims.

        Raises:
            InvalidTokenError: If the token is not an acceptable refresh token.
        """
        payload = self._decode(
            token,
            self._settings.refresh_secret_key.get_secret_value(),
            expected_type="refresh",
        )
        try:
            return RefreshClaims(
                user_id=payload["userId"],
                tenant_id=payload["tenantId"],
                iat=payload["iat"],
                exp=payload["exp"],
                jti=payload["jti"],
            )
        except (KeyError, ValidationError) as e:
            logger.debug("Refresh token rejected: missing or malformed claims (%s)", e)
            raise InvalidTokenError("Invalid token") from None

    @staticmethod
    def extract_bearer(header: str | None) -> str | None:
        """Extract the token from an Authorization header value.

        Args:
            header: Raw header value, e.g. ``"Bearer abc.def.ghi"``.

        Returns:
            The token, or None if the header is missing or malformed.
        """
        if not header:
            return None

        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None

        return parts[1]

    @staticmethod
    def hash_token(token: str) -> str:
        """Create a SHA-256 hash of a token.

        Used for storing single-use reset and verification tokens in the
        database instead of the actual token.

        Args:
            token: Token string to hash.

        Returns:
            SHA-256 hash of the token as hex string.
        """
        return hashlib.sha256(token.encode()).hexdigest()

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    def _encode(self, claims: dict[str, Any], secret: str, ttl_seconds: int) -> str:
        now = int(utc_now().timestamp())
        payload = {
            **claims,
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "iat": now,
            "exp": now + ttl_seconds,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, secret, algorithm=self._settings.algorithm)

    def _decode(self, token: str, secret: str, expected_type: TokenType) -> dict[str, Any]:
        if not token:
            logger.debug("Token rejected: empty")
            raise InvalidTokenError("Invalid token")

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options={"require_exp": True, "require_iat": True},
            )
        except ExpiredSignatureError:
            logger.debug("%s token rejected: expired", expected_type)
            raise InvalidTokenError("Invalid token") from None
        except JWTClaimsError as e:
            logger.debug("%s token rejected: claims check failed (%s)", expected_type, e)
            raise InvalidTokenError("Invalid token") from None
        except JoseJWTError as e:
            logger.debug("%s token rejected: %s", expected_type, e)
            raise InvalidTokenError("Invalid token") from None

        if payload.get("type") != expected_type:
            logger.debug(
                "Token rejected: expected %s token, got %s",
                expected_type,
                payload.get("type"),
            )
            raise InvalidTokenError("Invalid token")

        return payload
