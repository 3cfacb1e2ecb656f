# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User management API endpoints.

This module provides endpoints for managing the users of a tenant:
- GET / - List users (coach and above)
- GET /stats - User counts (coach and above)
- GET /role/{role} - Users holding a role (coach and above)
- GET /{user_id} - Get a user (students: themselves only)
- POST / - Create a user (branch manager and above)
- PUT /{user_id} - Update a user (students: themselves only)
- DELETE /{user_id} - Delete a user (system manager)

Every endpoint is confined to the caller's tenant. Coaches and branch
managers cannot place users in another branch. Nobody can hand out a role
above their own or change the email of a user who outranks them.
"""

import logging

from fastapi import APIRouter, Query, status

from src.api.dependencies import (
    AuthenticatedUser,
    BranchManagerUser,
    CoachUser,
    Pagination,
    SystemManagerUser,
    Users,
)
from src.api.errors import APIError, not_found
from src.api.middleware.auth import CurrentUser
from src.domains.authorization.gates import (
    ForbiddenError,
    check_branch,
    check_rank_reach,
    check_role_assignment,
    check_self_access,
)
from src.domains.authorization.roles import Role
from src.domains.user.service import (
    UserAlreadyExistsError,
    UserNotFoundError,
    UserOperationError,
    UserService,
)
from src.infrastructure.database.models.user import UserStatus
from src.models.common import ApiResponse, MessageResponse, PaginationMeta
from src.models.user import (
    UserCreateRequest,
    UserResponse,
    UserStatsResponse,
    UserUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields only branch managers and above may change on a user.
_PRIVILEGED_FIELDS = frozenset({"role", "status", "branch_id"})


@router.get(
    "",
    response_model=ApiResponse[list[UserResponse]],
    summary="List users",
    description="List the users of the caller's tenant with search, filters and pagination.",
)
async def list_users(
    current_user: CoachUser,
    service: Users,
    pagination: Pagination,
    search: str | None = Query(None, max_length=100, description="Search by name or email"),
    status_filter: UserStatus | None = Query(None, alias="status", description="Filter by status"),
    role: Role | None = Query(None, description="Filter by role"),
    branch_id: str | None = Query(None, description="Filter by branch"),
) -> ApiResponse[list[UserResponse]]:
    """List users.

    Args:
        current_user: Authenticated coach or above.
        service: User service.
        pagination: Page, size and ordering.
        search: Search term.
        status_filter: Status filter.
        role: Role filter.
        branch_id: Branch filter.

    Returns:
        One page of users plus pagination metadata.
    """
    users, total = await service.list_users(
        current_user.tenant_id,
        pagination,
        search=search,
        status=status_filter.value if status_filter else None,
        role=role.value if role else None,
        branch_id=branch_id,
    )

    return ApiResponse(
        data=users,
        pagination=PaginationMeta.from_total(pagination.page, pagination.limit, total),
    )


@router.get(
    "/stats",
    response_model=ApiResponse[UserStatsResponse],
    summary="User statistics",
    description="Count the users of the caller's tenant, overall, active and per role.",
)
async def get_user_stats(current_user: CoachUser, service: Users) -> ApiResponse[UserStatsResponse]:
    return ApiResponse(data=await service.get_stats(current_user.tenant_id))


@router.get(
    "/role/{role}",
    response_model=ApiResponse[list[UserResponse]],
    summary="Users by role",
    description="List every user of the caller's tenant holding a role.",
)
async def list_users_by_role(
    role: Role,
    current_user: CoachUser,
    service: Users,
) -> ApiResponse[list[UserResponse]]:
    return ApiResponse(data=await service.list_by_role(role.value, current_user.tenant_id))


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Get user",
    description="Get a user of the caller's tenant. Students may only read themselves.",
)
async def get_user(
    user_id: str,
    current_user: AuthenticatedUser,
    service: Users,
) -> ApiResponse[UserResponse]:
    """Get user by ID.

    Args:
        user_id: User identifier.
        current_user: Authenticated user.
        service: User service.

    Returns:
        User details.

    Raises:
        APIError: 404 if the user is not in the caller's tenant.
    """
    check_self_access(current_user, user_id)

    try:
        user = await service.get_user(user_id, current_user.tenant_id)
    except UserNotFoundError:
        raise not_found("User") from None

    return ApiResponse(data=user)


@router.post(
    "",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user in the caller's tenant. Requires branch manager or above.",
)
async def create_user(
    data: UserCreateRequest,
    current_user: BranchManagerUser,
    service: Users,
) -> ApiResponse[UserResponse]:
    """Create a new user.

    Args:
        data: User creation request.
        current_user: Authenticated branch manager or above.
        service: User service.

    Returns:
        Created user.

    Raises:
        APIError: 400 if the email is taken or the branch is unknown.
        ForbiddenError: If the role or branch is out of the caller's reach.
    """
    check_role_assignment(current_user, data.role)
    check_branch(current_user, data.branch_id)

    try:
        user = await service.create_user(current_user.tenant_id, data)
    except UserAlreadyExistsError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, str(e), "duplicate_user") from e
    except UserOperationError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, str(e), "bad_request") from e

    logger.info("User %s created by %s", user.id, current_user.user_id)

    return ApiResponse(data=user, message="User created successfully")


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update user",
    description="Update a user of the caller's tenant. Students may only update themselves.",
)
async def update_user(
    user_id: str,
    data: UserUpdateRequest,
    current_user: AuthenticatedUser,
    service: Users,
) -> ApiResponse[UserResponse]:
    """Update user information.

    Raises:
        APIError: 404 if the user is not in the caller's tenant, 400 if the
            email is taken or the branch is unknown.
        ForbiddenError: If the caller may not make this change.
    """
    check_self_access(current_user, user_id)
    _check_update_privileges(current_user, data)
    if "email" in data.model_fields_set and user_id != current_user.user_id:
        await _check_email_change(current_user, user_id, service)

    try:
        user = await service.update_user(user_id, current_user.tenant_id, data)
    except UserNotFoundError:
        raise not_found("User") from None
    except UserAlreadyExistsError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, str(e), "duplicate_user") from e
    except UserOperationError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, str(e), "bad_request") from e

    return ApiResponse(data=user, message="User updated successfully")


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete user",
    description="Delete a user of the caller's tenant. Requires system manager.",
)
async def delete_user(
    user_id: str,
    current_user: SystemManagerUser,
    service: Users,
) -> MessageResponse:
    """Delete a user.

    Raises:
        APIError: 400 when deleting oneself, 404 if the user is not in the
            caller's tenant.
    """
    if user_id == current_user.user_id:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Cannot delete your own account", "bad_request")

    logger.info("Deleting user: %s by %s", user_id, current_user.user_id)

    try:
        await service.delete_user(user_id, current_user.tenant_id)
    except UserNotFoundError:
        raise not_found("User") from None

    return MessageResponse(message="User deleted successfully")


def _check_update_privileges(current_user: CurrentUser, data: UserUpdateRequest) -> None:
    changed = data.model_fields_set

    privileged = changed & _PRIVILEGED_FIELDS
    if privileged and not current_user.has_minimum_role(Role.BRANCH_MANAGER):
        logger.info("Access denied: user=%s, fields=%s", current_user.user_id, sorted(privileged))
        raise ForbiddenError(f"{current_user.role} cannot change {sorted(privileged)}")

    if data.role is not None:
        check_role_assignment(current_user, data.role)
    if "branch_id" in changed:
        check_branch(current_user, data.branch_id)


async def _check_email_change(current_user: CurrentUser, user_id: str, service: UserService) -> None:
    """Only users of equal or lower rank may have their email changed by the caller."""
    try:
        target = await service.get_user(user_id, current_user.tenant_id)
    except UserNotFoundError:
        raise not_found("User") from None
    check_rank_reach(current_user, target.role)
