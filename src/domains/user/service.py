# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User service for tenant user management.

This module provides the UserService that handles:
- User CRUD operations within one tenant
- User search, filtering and pagination
- User statistics

Authorization (who may create, read or change whom) is decided by the
routes through the authorization gates before the service is called. The
service only enforces data rules: unique email per tenant and branch
references that stay inside the tenant.

Example:
    >>> user_service = UserService(db_session, password_hasher)
    >>> user = await user_service.create_user(tenant_id, request)
    >>> users, total = await user_service.list_users(tenant_id, PageParams(limit=20))
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.models.user import User
from src.infrastructure.database.repositories import (
    BranchRepository,
    DuplicateRecordError,
    InvalidReferenceError,
    ListFilters,
    PageParams,
    UserRepository,
)
from src.models.user import (
    UserCreateRequest,
    UserResponse,
    UserStatsResponse,
    UserUpdateRequest,
)

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for user service errors."""

    pass


class UserNotFoundError(UserServiceError):
    """Raised when a user is not found in the tenant."""

    pass


class UserAlreadyExistsError(UserServiceError):
    """Raised when the email is already used in the tenant."""

    pass


class UserOperationError(UserServiceError):
    """Raised when a user operation references invalid data."""

    pass


class UserService:
    """Service for managing the users of a tenant.

    Every method takes the tenant id of the caller. A user of another tenant
    is reported as not found.

    Attributes:
        _db: Async database session.
        _password_hasher: Hashes passwords of created users.
        _users: User repository bound to the session.
        _branches: Branch repository bound to the session.

    Example:
        >>> service = UserService(db, hasher)
        >>> user = await service.create_user(tenant_id, create_request)
        >>> await service.delete_user(user.id, tenant_id)
    """

    def __init__(self, db: AsyncSession, password_hasher: PasswordHasher) -> None:
        """Initialize the user service.

        Args:
            db: Async database session.
            password_hasher: bcrypt hasher for new passwords.
        """
        self._db = db
        self._password_hasher = password_hasher
        self._users = UserRepository(db)
        self._branches = BranchRepository(db)

    async def list_users(
        self,
        tenant_id: str,
        pagination: PageParams | None = None,
        search: str | None = None,
        status: str | None = None,
        role: str | None = None,
        branch_id: str | None = None,
    ) -> tuple[list[UserResponse], int]:
        """List users with optional filtering.

        Args:
            tenant_id: Tenant of the caller.
            pagination: Page, size and ordering.
            search: Search by name or email.
            status: Filter by status.
            role: Filter by role.
            branch_id: Filter by branch.

        Returns:
            Tuple of (users on the page, total matching count).
        """
        page = await self._users.find_all(
            tenant_id,
            pagination,
            ListFilters(
                search=search,
                status=status,
                equals={"role": role, "branch_id": branch_id},
            ),
        )
        return [self._to_response(u) for u in page.items], page.total

    async def list_by_role(self, role: str, tenant_id: str) -> list[UserResponse]:
        """List every user of a tenant holding ``role``."""
        users = await self._users.find_by_role(role, tenant_id)
        return [self._to_response(u) for u in users]

    async def get_user(self, user_id: str, tenant_id: str) -> UserResponse:
        """Get a user by ID.

        Raises:
            UserNotFoundError: If the user is not in the tenant.
        """
        user = await self._get_by_id(user_id, tenant_id)
        return self._to_response(user)

    async def create_user(self, tenant_id: str, request: UserCreateRequest) -> UserResponse:
        """Create a user in a tenant.

        Args:
            tenant_id: Tenant of the caller.
            request: User creation request.

        Returns:
            Created user response.

        Raises:
            UserAlreadyExistsError: If the email already exists in the tenant.
            UserOperationError: If the branch is not a branch of the tenant.
        """
        await self._check_branch(request.branch_id, tenant_id)

        password_hash = await self._password_hasher.hash_async(request.password)
        data = request.model_dump(mode="json", exclude={"password"})

        try:
            user = await self._users.create(
                {**data, "tenant_id": tenant_id, "password_hash": password_hash}
            )
        except DuplicateRecordError:
            raise UserAlreadyExistsError(f"User with email {request.email} already exists") from None
        except InvalidReferenceError:
            raise UserOperationError("Branch not found") from None

        await self._db.commit()

        logger.info("User created: %s (tenant=%s, role=%s)", user.id, tenant_id, user.role)

        return self._to_response(user)

    async def update_user(
        self,
        user_id: str,
        tenant_id: str,
        request: UserUpdateRequest,
    ) -> UserResponse:
        """Update a user.

        Only fields present in the request are changed.

        Raises:
            UserNotFoundError: If the user is not in the tenant.
            UserAlreadyExistsError: If the new email is taken in the tenant.
            UserOperationError: If the branch is not a branch of the tenant.
        """
        patch: dict[str, Any] = request.model_dump(mode="json", exclude_unset=True)
        await self._check_branch(patch.get("branch_id"), tenant_id)

        try:
            user = await self._users.update(user_id, tenant_id, patch)
        except DuplicateRecordError:
            raise UserAlreadyExistsError("Email already in use") from None
        except InvalidReferenceError:
            raise UserOperationError("Branch not found") from None

        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")

        await self._db.commit()

        logger.info("User updated: %s (fields=%s)", user.id, sorted(patch))

        return self._to_response(user)

    async def delete_user(self, user_id: str, tenant_id: str) -> None:
        """Delete a user.

        Raises:
            UserNotFoundError: If the user is not in the tenant.
        """
        if not await self._users.delete(user_id, tenant_id):
            raise UserNotFoundError(f"User {user_id} not found")

        await self._db.commit()

        logger.info("User deleted: %s (tenant=%s)", user_id, tenant_id)

    async def get_stats(self, tenant_id: str) -> UserStatsResponse:
        """Count the users of a tenant."""
        return UserStatsResponse(**await self._users.get_stats(tenant_id))

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    async def _get_by_id(self, user_id: str, tenant_id: str) -> User:
        user = await self._users.find_by_id(user_id, tenant_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _check_branch(self, branch_id: str | None, tenant_id: str) -> None:
        if branch_id and not await self._branches.exists(branch_id, tenant_id):
            raise UserOperationError("Branch not found")

    def _to_response(self, user: User) -> UserResponse:
        return UserResponse.model_validate(user)
