# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Branch management API endpoints.

This module provides endpoints for the branches (physical locations) of a
tenant:
- GET / - List branches (coach and above)
- GET /{branch_id} - Get a branch (coach and above, own branch)
- GET /{branch_id}/coaches - Coaches of a branch (coach and above, own branch)
- POST / - Open a branch (system manager)
- PUT /{branch_id} - Update a branch (branch manager and above, own branch)
- DELETE /{branch_id} - Delete a branch (system manager)
"""

import logging

from fastapi import APIRouter, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    BranchManagerUser,
    CoachUser,
    DBSession,
    Pagination,
    SystemManagerUser,
)
from src.api.errors import APIError, not_found
from src.domains.authorization.gates import check_branch
from src.domains.authorization.roles import Role, has_minimum_role
from src.infrastructure.database.repositories import (
    BranchRepository,
    ListFilters,
    UserRepository,
)
from src.models.branch import BranchCreateRequest, BranchResponse, BranchUpdateRequest
from src.models.common import ApiResponse, MessageResponse, PaginationMeta
from src.models.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_manager(db: AsyncSession, tenant_id: str, manager_id: str | None) -> None:
    """Require the manager to be a branch manager or above of the tenant."""
    if manager_id is None:
        return

    manager = await UserRepository(db).find_by_id(manager_id, tenant_id)
    if manager is None or not has_minimum_role(manager.role, Role.BRANCH_MANAGER):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Manager not found", "bad_request")


@router.get(
    "",
    response_model=ApiResponse[list[BranchResponse]],
    summary="List branches",
    description="List the branches of the caller's tenant.",
)
async def list_branches(
    current_user: CoachUser,
    db: DBSession,
    pagination: Pagination,
    search: str | None = Query(None, max_length=100, description="Search by name, city or address"),
    status_filter: str | None = Query(None, alias="status", pattern="^(active|inactive)$"),
    city: str | None = Query(None, description="Filter by city"),
) -> ApiResponse[list[BranchResponse]]:
    page = await BranchRepository(db).find_all(
        current_user.tenant_id,
        pagination,
        ListFilters(search=search, status=status_filter, equals={"city": city}),
    )

    return ApiResponse(
        data=[BranchResponse.model_validate(b) for b in page.items],
        pagination=PaginationMeta.from_total(page.page, page.limit, page.total),
    )


@router.get(
    "/{branch_id}",
    response_model=ApiResponse[BranchResponse],
    summary="Get branch",
)
async def get_branch(
    branch_id: str,
    current_user: CoachUser,
    db: DBSession,
) -> ApiResponse[BranchResponse]:
    """Get a branch of the caller's tenant.

    Raises:
        ForbiddenError: If a coach or branch manager asks for another branch.
        APIError: 404 if the branch is not in the caller's tenant.
    """
    check_branch(current_user, branch_id)

    branch = await BranchRepository(db).find_by_id(branch_id, current_user.tenant_id)
    if branch is None:
        raise not_found("Branch")

    return ApiResponse(data=BranchResponse.model_validate(branch))


@router.get(
    "/{branch_id}/coaches",
    response_model=ApiResponse[list[UserResponse]],
    summary="List branch coaches",
)
async def list_branch_coaches(
    branch_id: str,
    current_user: CoachUser,
    db: DBSession,
) -> ApiResponse[list[UserResponse]]:
    check_branch(current_user, branch_id)

    if not await BranchRepository(db).exists(branch_id, current_user.tenant_id):
        raise not_found("Branch")

    coaches = await UserRepository(db).find_coaches_by_branch(branch_id, current_user.tenant_id)
    return ApiResponse(data=[UserResponse.model_validate(c) for c in coaches])


@router.post(
    "",
    response_model=ApiResponse[BranchResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create branch",
    description="Open a branch in the caller's tenant. Requires system manager.",
)
async def create_branch(
    data: BranchCreateRequest,
    current_user: SystemManagerUser,
    db: DBSession,
) -> ApiResponse[BranchResponse]:
    await _check_manager(db, current_user.tenant_id, data.manager_id)

    branch = await BranchRepository(db).create(
        {**data.model_dump(mode="json"), "tenant_id": current_user.tenant_id}
    )
    await db.commit()

    logger.info("Branch created: %s by %s", branch.id, current_user.user_id)

    return ApiResponse(data=BranchResponse.model_validate(branch), message="Branch created successfully")


@router.put(
    "/{branch_id}",
    response_model=ApiResponse[BranchResponse],
    summary="Update branch",
    description="Update a branch. Branch managers may only update their own branch.",
)
async def update_branch(
    branch_id: str,
    data: BranchUpdateRequest,
    current_user: BranchManagerUser,
    db: DBSession,
) -> ApiResponse[BranchResponse]:
    check_branch(current_user, branch_id)

    patch = data.model_dump(mode="json", exclude_unset=True)
    await _check_manager(db, current_user.tenant_id, patch.get("manager_id"))

    branch = await BranchRepository(db).update(branch_id, current_user.tenant_id, patch)
    if branch is None:
        raise not_found("Branch")
    await db.commit()

    return ApiResponse(data=BranchResponse.model_validate(branch), message="Branch updated successfully")


@router.delete(
    "/{branch_id}",
    response_model=MessageResponse,
    summary="Delete branch",
    description="Delete a branch and its classes. Requires system manager.",
)
async def delete_branch(
    branch_id: str,
    current_user: SystemManagerUser,
    db: DBSession,
) -> MessageResponse:
    if not await BranchRepository(db).delete(branch_id, current_user.tenant_id):
        raise not_found("Branch")
    await db.commit()

    logger.info("Branch deleted: %s by %s", branch_id, current_user.user_id)

    return MessageResponse(message="Branch deleted successfully")
