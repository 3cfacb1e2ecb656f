# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class schedule API endpoints.

This module provides endpoints for the classes taught at a tenant's
branches:
- GET / - List classes (coach and above)
- GET /upcoming - Next classes to start
- GET /stats - Class counts and enrollment (coach and above)
- GET /{class_id} - Get a class
- POST / - Schedule a class (branch manager and above, own branch)
- PUT /{class_id} - Update a class (branch manager and above, own branch)
- DELETE /{class_id} - Delete a class (branch manager and above, own branch)
"""

import logging

from fastapi import APIRouter, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    AuthenticatedUser,
    BranchManagerUser,
    CoachUser,
    DBSession,
    Pagination,
)
from src.api.errors import APIError, not_found
from src.api.middleware.auth import CurrentUser
from src.domains.authorization.gates import check_branch
from src.domains.authorization.roles import Role, has_minimum_role
from src.infrastructure.database.models.class_ import Class, ClassStatus
from src.infrastructure.database.repositories import (
    BranchRepository,
    ClassRepository,
    ListFilters,
    UserRepository,
)
from src.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassStatsResponse,
    ClassUpdateRequest,
)
from src.models.common import ApiResponse, MessageResponse, PaginationMeta
from src.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_references(
    db: AsyncSession,
    tenant_id: str,
    branch_id: str | None,
    coach_id: str | None,
) -> None:
    """Require branch and coach to exist in the tenant."""
    if branch_id is not None and not await BranchRepository(db).exists(branch_id, tenant_id):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Branch not found", "bad_request")

    if coach_id is not None:
        coach = await UserRepository(db).find_by_id(coach_id, tenant_id)
        if coach is None or not has_minimum_role(coach.role, Role.COACH):
            raise APIError(status.HTTP_400_BAD_REQUEST, "Coach not found", "bad_request")


async def _get_class_in_reach(db: AsyncSession, class_id: str, current_user: CurrentUser) -> Class:
    class_ = await ClassRepository(db).find_by_id(class_id, current_user.tenant_id)
    if class_ is None:
        raise not_found("Class")
    check_branch(current_user, class_.branch_id)
    return class_


@router.get(
    "",
    response_model=ApiResponse[list[ClassResponse]],
    summary="List classes",
    description="List the classes of the caller's tenant with filters and pagination.",
)
async def list_classes(
    current_user: CoachUser,
    db: DBSession,
    pagination: Pagination,
    search: str | None = Query(None, max_length=100, description="Search by name, description or modality"),
    status_filter: ClassStatus | None = Query(None, alias="status", description="Filter by status"),
    branch_id: str | None = Query(None, description="Filter by branch"),
    coach_id: str | None = Query(None, description="Filter by coach"),
    modality: str | None = Query(None, description="Filter by modality"),
) -> ApiResponse[list[ClassResponse]]:
    page = await ClassRepository(db).find_all(
        current_user.tenant_id,
        pagination,
        ListFilters(
            search=search,
            status=status_filter.value if status_filter else None,
            equals={"branch_id": branch_id, "coach_id": coach_id, "modality": modality},
        ),
    )

    return ApiResponse(
        data=[ClassResponse.model_validate(c) for c in page.items],
        pagination=PaginationMeta.from_total(page.page, page.limit, page.total),
    )


@router.get(
    "/upcoming",
    response_model=ApiResponse[list[ClassResponse]],
    summary="Upcoming classes",
    description="Classes of the caller's tenant that have not started yet, soonest first.",
)
async def list_upcoming_classes(
    current_user: AuthenticatedUser,
    db: DBSession,
    limit: int = Query(10, ge=1, le=100),
) -> ApiResponse[list[ClassResponse]]:
    classes = await ClassRepository(db).find_upcoming(current_user.tenant_id, limit=limit)
    return ApiResponse(data=[ClassResponse.model_validate(c) for c in classes])


@router.get(
    "/stats",
    response_model=ApiResponse[ClassStatsResponse],
    summary="Class statistics",
)
async def get_class_stats(current_user: CoachUser, db: DBSession) -> ApiResponse[ClassStatsResponse]:
    stats = await ClassRepository(db).get_stats(current_user.tenant_id)
    return ApiResponse(data=ClassStatsResponse(**stats))


@router.get(
    "/{class_id}",
    response_model=ApiResponse[ClassResponse],
    summary="Get class",
)
async def get_class(
    class_id: str,
    current_user: AuthenticatedUser,
    db: DBSession,
) -> ApiResponse[ClassResponse]:
    class_ = await ClassRepository(db).find_by_id(class_id, current_user.tenant_id)
    if class_ is None:
        raise not_found("Class")
    return ApiResponse(data=ClassResponse.model_validate(class_))


@router.post(
    "",
    response_model=ApiResponse[ClassResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
    description="Schedule a class. Branch managers may only schedule at their own branch.",
)
async def create_class(
    data: ClassCreateRequest,
    current_user: BranchManagerUser,
    db: DBSession,
) -> ApiResponse[ClassResponse]:
    """Schedule a class.

    Raises:
        ForbiddenError: If the branch is out of the caller's reach.
        APIError: 400 if the branch or coach is not in the tenant.
    """
    check_branch(current_user, data.branch_id)
    await _check_references(db, current_user.tenant_id, data.branch_id, data.coach_id)

    class_ = await ClassRepository(db).create(
        {
            **data.model_dump(),
            "tenant_id": current_user.tenant_id,
            "status": ClassStatus.SCHEDULED.value,
        }
    )
    await db.commit()

    logger.info("Class created: %s at branch %s", class_.id, class_.branch_id)

    return ApiResponse(data=ClassResponse.model_validate(class_), message="Class created successfully")


@router.put(
    "/{class_id}",
    response_model=ApiResponse[ClassResponse],
    summary="Update class",
    description="Update a class. Branch managers may only change classes of their own branch.",
)
async def update_class(
    class_id: str,
    data: ClassUpdateRequest,
    current_user: BranchManagerUser,
    db: DBSession,
) -> ApiResponse[ClassResponse]:
    """Update a class.

    Raises:
        ForbiddenError: If the class, or the branch it moves to, is out of
            the caller's reach.
        APIError: 404 if the class is not in the tenant, 400 for a bad
            branch, coach or time window.
    """
    existing = await _get_class_in_reach(db, class_id, current_user)

    patch = data.model_dump(exclude_unset=True)
    if "status" in patch and patch["status"] is not None:
        patch["status"] = ClassStatus(patch["status"]).value
    if "branch_id" in patch:
        check_branch(current_user, patch["branch_id"])
    await _check_references(db, current_user.tenant_id, patch.get("branch_id"), patch.get("coach_id"))

    start = ensure_utc(patch.get("start_time") or existing.start_time)
    end = ensure_utc(patch.get("end_time") or existing.end_time)
    if end <= start:
        raise APIError(status.HTTP_400_BAD_REQUEST, "end_time must be after start_time", "validation_error")

    class_ = await ClassRepository(db).update(class_id, current_user.tenant_id, patch)
    if class_ is None:
        raise not_found("Class")
    await db.commit()

    return ApiResponse(data=ClassResponse.model_validate(class_), message="Class updated successfully")


@router.delete(
    "/{class_id}",
    response_model=MessageResponse,
    summary="Delete class",
)
async def delete_class(
    class_id: str,
    current_user: BranchManagerUser,
    db: DBSession,
) -> MessageResponse:
    await _get_class_in_reach(db, class_id, current_user)

    if not await ClassRepository(db).delete(class_id, current_user.tenant_id):
        raise not_found("Class")
    await db.commit()

    logger.info("Class deleted: %s by %s", class_id, current_user.user_id)

    return MessageResponse(message="Class deleted successfully")
