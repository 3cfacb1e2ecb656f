# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Branch repository."""

from sqlalchemy import ColumnElement

from src.infrastructure.database.models.branch import Branch
from src.infrastructure.database.repositories.base import (
    InvalidQueryError,
    TenantScopedRepository,
)


class BranchRepository(TenantScopedRepository[Branch]):
    """Tenant-scoped access to branches."""

    model = Branch
    search_fields = ("name", "city", "address")
    sortable_fields = ("name", "city", "created_at", "updated_at")
    filterable_fields = ("city", "state", "country", "manager_id")
    status_field = "is_active"

    async def find_by_manager(self, manager_id: str, tenant_id: str) -> list[Branch]:
        return await self._find_where(
            tenant_id,
            Branch.manager_id == manager_id,
            order_by=(Branch.name,),
        )

    def _status_condition(self, status: str) -> ColumnElement[bool]:
        if status not in ("active", "inactive"):
            raise InvalidQueryError("Branch status must be 'active' or 'inactive'")
        return Branch.is_active.is_(status == "active")
