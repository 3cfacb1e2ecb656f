# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant repository.

The tenant key of the tenants table is the row's own id, so the generic
operations only ever reach the caller's own tenant. Domain resolution at
login and the license sweeps are the platform-level reads that are not
bound to one tenant.
"""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import ColumnElement, case, func, select

from src.infrastructure.database.models.base import generate_uuid
from src.infrastructure.database.models.branch import Branch
from src.infrastructure.database.models.class_ import Class
from src.infrastructure.database.models.tenant import LicensePlan, Tenant
from src.infrastructure.database.models.user import User, UserStatus
from src.infrastructure.database.repositories.base import (
    InvalidQueryError,
    TenantScopedRepository,
)
from src.utils.datetime import utc_now


class TenantRepository(TenantScopedRepository[Tenant]):
    """Access to tenant records."""

    model = Tenant
    tenant_key = "id"
    search_fields = ("name", "domain", "contact_email")
    sortable_fields = ("name", "domain", "created_at", "updated_at", "license_end")
    filterable_fields = ("plan",)
    status_field = "is_active"

    async def create(self, data: dict[str, Any]) -> Tenant:
        """Provision a tenant. The id is generated when absent."""
        data = {**data, "id": data.get("id") or generate_uuid()}
        if data.get("domain"):
            data["domain"] = data["domain"].strip().lower()
        return await super().create(data)

    async def find_by_domain(self, domain: str) -> Tenant | None:
        """Resolve a login namespace to its tenant."""
        result = await self._session.execute(
            select(Tenant).where(Tenant.domain == domain.strip().lower())
        )
        return result.scalar_one_or_none()

    async def is_domain_available(self, domain: str, exclude_id: str | None = None) -> bool:
        stmt = select(Tenant.id).where(Tenant.domain == domain.strip().lower())
        if exclude_id:
            stmt = stmt.where(Tenant.id != exclude_id)
        result = await self._session.execute(stmt.limit(1))
        return result.first() is None

    async def update_license(
        self,
        tenant_id: str,
        plan: LicensePlan | str,
        license_end: datetime,
        license_start: datetime | None = None,
    ) -> Tenant | None:
        values: dict[str, Any] = {
            "plan": LicensePlan(plan).value,
            "license_end": license_end,
        }
        if license_start is not None:
            values["license_start"] = license_start
        return await self._update_where(tenant_id, values=values)

    async def update_status(self, tenant_id: str, is_active: bool) -> Tenant | None:
        return await self._update_where(tenant_id, values={"is_active": is_active})

    async def update_settings(self, tenant_id: str, settings: dict[str, Any]) -> Tenant | None:
        """Replace the settings map."""
        return await self._update_where(tenant_id, values={"settings": settings})

    async def find_expired_tenants(self) -> list[Tenant]:
        """Active tenants whose license has ended."""
        result = await self._session.execute(
            select(Tenant)
            .where(Tenant.is_active.is_(True), Tenant.license_end < utc_now())
            .order_by(Tenant.license_end)
        )
        return list(result.scalars().all())

    async def find_expiring_tenants(self, days: int = 7) -> list[Tenant]:
        """Active tenants whose license ends within the next ``days`` days."""
        now = utc_now()
        result = await self._session.execute(
            select(Tenant)
            .where(
                Tenant.is_active.is_(True),
                Tenant.license_end >= now,
                Tenant.license_end <= now + timedelta(days=days),
            )
            .order_by(Tenant.license_end)
        )
        return list(result.scalars().all())

    async def get_stats(self, tenant_id: str) -> dict[str, int]:
        """Totals of the tenant's users, branches and classes."""
        tenant_id = self._require_tenant(tenant_id)

        users = await self._session.execute(
            select(
                func.count(User.id),
                func.count(case((User.status == UserStatus.ACTIVE.value, 1))),
            ).where(User.tenant_id == tenant_id)
        )
        total_users, active_users = users.one()

        total_branches = await self._session.scalar(
            select(func.count(Branch.id)).where(Branch.tenant_id == tenant_id)
        )
        total_classes = await self._session.scalar(
            select(func.count(Class.id)).where(Class.tenant_id == tenant_id)
        )

        return {
            "total_users": int(total_users),
            "active_users": int(active_users),
            "total_branches": int(total_branches or 0),
            "total_classes": int(total_classes or 0),
        }

    def _status_condition(self, status: str) -> ColumnElement[bool]:
        if status not in ("active", "inactive"):
            raise InvalidQueryError("Tenant status must be 'active' or 'inactive'")
        return Tenant.is_active.is_(status == "active")
