# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class repository.

Enrollment counters are changed with guarded single statements: an increment
only matches while a seat is free, a decrement never goes below zero.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select

from src.infrastructure.database.models.class_ import Class, ClassStatus
from src.infrastructure.database.repositories.base import TenantScopedRepository
from src.utils.datetime import utc_now


class ClassRepository(TenantScopedRepository[Class]):
    """Tenant-scoped access to classes."""

    model = Class
    search_fields = ("name", "description", "modality")
    sortable_fields = ("name", "start_time", "modality", "created_at", "updated_at")
    filterable_fields = ("branch_id", "coach_id", "modality")
    status_field = "status"

    async def find_by_branch(self, branch_id: str, tenant_id: str) -> list[Class]:
        return await self._find_where(
            tenant_id,
            Class.branch_id == branch_id,
            order_by=(Class.start_time,),
        )

    async def find_by_coach(self, coach_id: str, tenant_id: str) -> list[Class]:
        return await self._find_where(
            tenant_id,
            Class.coach_id == coach_id,
            order_by=(Class.start_time,),
        )

    async def find_upcoming(self, tenant_id: str, limit: int = 10) -> list[Class]:
        return await self._find_where(
            tenant_id,
            Class.start_time > utc_now(),
            order_by=(Class.start_time,),
            limit=limit,
        )

    async def find_by_date_range(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Class]:
        return await self._find_where(
            tenant_id,
            Class.start_time >= start,
            Class.start_time <= end,
            order_by=(Class.start_time,),
        )

    async def find_by_modality(self, modality: str, tenant_id: str) -> list[Class]:
        return await self._find_where(
            tenant_id,
            Class.modality == modality,
            order_by=(Class.start_time,),
        )

    async def find_available(self, tenant_id: str) -> list[Class]:
        """Upcoming classes with at least one free seat."""
        return await self._find_where(
            tenant_id,
            Class.current_enrollment < Class.max_capacity,
            Class.start_time > utc_now(),
            order_by=(Class.start_time,),
        )

    async def increment_enrollment(self, id: str, tenant_id: str) -> Class | None:
        """Take a seat.

        Returns:
            The updated class, or None if it does not exist or is full.
        """
        return await self._update_where(
            tenant_id,
            Class.id == id,
            Class.current_enrollment < Class.max_capacity,
            values={"current_enrollment": Class.current_enrollment + 1},
        )

    async def decrement_enrollment(self, id: str, tenant_id: str) -> Class | None:
        """Free a seat, flooring the counter at zero."""
        return await self._update_where(
            tenant_id,
            Class.id == id,
            values={
                "current_enrollment": case(
                    (Class.current_enrollment > 0, Class.current_enrollment - 1),
                    else_=0,
                )
            },
        )

    async def update_status(self, id: str, tenant_id: str, status: ClassStatus | str) -> Class | None:
        return await self._update_where(
            tenant_id,
            Class.id == id,
            values={"status": ClassStatus(status).value},
        )

    async def get_stats(self, tenant_id: str) -> dict[str, Any]:
        """Class counts per status and enrollment totals."""
        tenant_id = self._require_tenant(tenant_id)

        status_rows = await self._session.execute(
            select(Class.status, func.count(Class.id))
            .where(Class.tenant_id == tenant_id)
            .group_by(Class.status)
        )
        by_status = {status: int(count) for status, count in status_rows.all()}

        enrollment = await self._session.execute(
            select(
                func.coalesce(func.sum(Class.current_enrollment), 0),
                func.coalesce(func.avg(Class.current_enrollment), 0),
            ).where(Class.tenant_id == tenant_id)
        )
        total_enrollments, average_enrollment = enrollment.one()

        return {
            "total": sum(by_status.values()),
            "scheduled": by_status.get(ClassStatus.SCHEDULED.value, 0),
            "ongoing": by_status.get(ClassStatus.ONGOING.value, 0),
            "completed": by_status.get(ClassStatus.COMPLETED.value, 0),
            "cancelled": by_status.get(ClassStatus.CANCELLED.value, 0),
            "total_enrollments": int(total_enrollments),
            "average_enrollment": round(float(average_enrollment), 2),
        }
