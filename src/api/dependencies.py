# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions from the application's store handle
- Get authenticated users and enforce the role gate
- Get service instances

The store handle is owned by the application lifespan and kept on
``app.state.database``; nothing here holds module-level connection state.

Example:
    @router.get("/users")
    async def list_users(
        db: DBSession,
        current_user: CurrentUser = Depends(RequireRole(Role.COACH)),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator, Literal

from fastapi import Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.errors import APIError
from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import Settings, get_settings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.notifier import AuthNotifier, LoggingNotifier
from src.domains.auth.password import PasswordHasher
from src.domains.auth.service import AuthService
from src.domains.authorization.gates import check_role
from src.domains.authorization.roles import Role
from src.domains.user.service import UserService
from src.infrastructure.database.connection import Database
from src.infrastructure.database.repositories import PageParams
from src.infrastructure.database.repositories.base import DEFAULT_LIMIT, MAX_LIMIT

logger = logging.getLogger(__name__)


# =========================================================================
# Database Dependencies
# =========================================================================


def get_database(request: Request) -> Database:
    """Get the store handle of the running application.

    Raises:
        HTTPException: If the handle is missing or not initialized.
    """
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None or not database.is_initialized:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not initialized",
        )
    return database


async def get_db_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Yields:
        AsyncSession committed on success and rolled back on error.
    """
    async with database.session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        APIError: 401 if not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise APIError(
            status.HTTP_401_UNAUTHORIZED,
            "Authentication required",
            "unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


class RequireRole:
    """Dependency for requiring a minimum role.

    Higher roles satisfy lower requirements.

    Example:
        @router.delete("/{user_id}")
        async def delete_user(
            user: CurrentUser = Depends(RequireRole(Role.SYSTEM_MANAGER)),
        ):
            ...
    """

    def __init__(self, minimum: Role) -> None:
        """Initialize role requirement.

        Args:
            minimum: Lowest role allowed through.
        """
        self.minimum = minimum

    def __call__(self, request: Request) -> CurrentUser:
        """Check the role and return the user.

        Raises:
            APIError: 401 if not authenticated.
            ForbiddenError: If the role ranks below the minimum.
        """
        user = require_auth(request)
        check_role(user, self.minimum)
        return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was built with."""
    settings: Settings | None = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def get_jwt_manager(request: Request) -> JWTManager:
    """Get the application's JWT manager.

    Returns:
        JWTManager.
    """
    jwt_manager: JWTManager | None = getattr(request.app.state, "jwt_manager", None)
    return jwt_manager or JWTManager(get_settings().jwt)


def get_password_hasher(request: Request) -> PasswordHasher:
    """Get the application's password hasher.

    Returns:
        PasswordHasher.
    """
    hasher: PasswordHasher | None = getattr(request.app.state, "password_hasher", None)
    return hasher or PasswordHasher(rounds=get_settings().auth.bcrypt_rounds)


def get_notifier(request: Request) -> AuthNotifier:
    """Get the token delivery collaborator."""
    notifier: AuthNotifier | None = getattr(request.app.state, "notifier", None)
    return notifier or LoggingNotifier()


async def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    notifier: AuthNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    """Get AuthService instance.

    Args:
        db: Database session.
        jwt_manager: JWT manager.
        password_hasher: Password hasher.
        notifier: Token delivery collaborator.
        settings: Application settings.

    Returns:
        AuthService.
    """
    return AuthService(db, jwt_manager, password_hasher, settings.auth, notifier)


async def get_user_service(
    db: AsyncSession = Depends(get_db_session),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
) -> UserService:
    return UserService(db, password_hasher)


# =========================================================================
# Query Dependencies
# =========================================================================


def get_page_params(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Page size"),
    sort_by: str = Query("created_at", description="Column to sort by"),
    sort_order: Literal["asc", "desc"] = Query("desc", description="Sort direction"),
) -> PageParams:
    return PageParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

DBSession = Annotated[AsyncSession, Depends(get_db_session)]
AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
CoachUser = Annotated[CurrentUser, Depends(RequireRole(Role.COACH))]
BranchManagerUser = Annotated[CurrentUser, Depends(RequireRole(Role.BRANCH_MANAGER))]
SystemManagerUser = Annotated[CurrentUser, Depends(RequireRole(Role.SYSTEM_MANAGER))]
Auth = Annotated[AuthService, Depends(get_auth_service)]
Users = Annotated[UserService, Depends(get_user_service)]
Pagination = Annotated[PageParams, Depends(get_page_params)]
