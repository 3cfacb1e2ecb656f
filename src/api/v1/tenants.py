# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant API endpoints.

This module provides endpoints for the caller's own academy:
- GET /current - The caller's tenant
- GET /{tenant_id} - Get a tenant (branch manager and above, own tenant)
- GET /{tenant_id}/stats - Tenant totals (branch manager and above, own tenant)
- PUT /{tenant_id}/settings - Replace tenant settings (system manager, own tenant)

A tenant id in the path that is not the caller's own is refused before the
role is checked and before any lookup happens.
"""

import logging

from fastapi import APIRouter

from src.api.dependencies import AuthenticatedUser, DBSession
from src.api.errors import not_found
from src.domains.authorization.gates import authorize
from src.domains.authorization.roles import Role
from src.infrastructure.database.repositories import TenantRepository
from src.models.common import ApiResponse
from src.models.tenant import (
    TenantResponse,
    TenantSettingsUpdateRequest,
    TenantStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/current",
    response_model=ApiResponse[TenantResponse],
    summary="Current tenant",
    description="Return the tenant of the authenticated user.",
)
async def get_current_tenant(
    current_user: AuthenticatedUser,
    db: DBSession,
) -> ApiResponse[TenantResponse]:
    tenant = await TenantRepository(db).find_by_id(current_user.tenant_id, current_user.tenant_id)
    if tenant is None:
        raise not_found("Tenant")
    return ApiResponse(data=TenantResponse.model_validate(tenant))


@router.get(
    "/{tenant_id}",
    response_model=ApiResponse[TenantResponse],
    summary="Get tenant",
)
async def get_tenant(
    tenant_id: str,
    current_user: AuthenticatedUser,
    db: DBSession,
) -> ApiResponse[TenantResponse]:
    """Get a tenant.

    Raises:
        ForbiddenError: If the tenant is not the caller's.
        APIError: 404 if the tenant does not exist.
    """
    authorize(current_user, tenant_id=tenant_id, minimum_role=Role.BRANCH_MANAGER)

    tenant = await TenantRepository(db).find_by_id(tenant_id, tenant_id)
    if tenant is None:
        raise not_found("Tenant")
    return ApiResponse(data=TenantResponse.model_validate(tenant))


@router.get(
    "/{tenant_id}/stats",
    response_model=ApiResponse[TenantStatsResponse],
    summary="Tenant statistics",
    description="Total and active users, branches and classes of a tenant.",
)
async def get_tenant_stats(
    tenant_id: str,
    current_user: AuthenticatedUser,
    db: DBSession,
) -> ApiResponse[TenantStatsResponse]:
    authorize(current_user, tenant_id=tenant_id, minimum_role=Role.BRANCH_MANAGER)

    stats = await TenantRepository(db).get_stats(tenant_id)
    return ApiResponse(data=TenantStatsResponse(**stats))


@router.put(
    "/{tenant_id}/settings",
    response_model=ApiResponse[TenantResponse],
    summary="Update tenant settings",
    description="Replace the settings map of a tenant. Requires system manager.",
)
async def update_tenant_settings(
    tenant_id: str,
    data: TenantSettingsUpdateRequest,
    current_user: AuthenticatedUser,
    db: DBSession,
) -> ApiResponse[TenantResponse]:
    authorize(current_user, tenant_id=tenant_id, minimum_role=Role.SYSTEM_MANAGER)

    tenant = await TenantRepository(db).update_settings(tenant_id, data.settings)
    if tenant is None:
        raise not_found("Tenant")
    await db.commit()

    logger.info("Tenant settings updated: %s by %s", tenant_id, current_user.user_id)

    return ApiResponse(data=TenantResponse.model_validate(tenant), message="Settings updated successfully")
