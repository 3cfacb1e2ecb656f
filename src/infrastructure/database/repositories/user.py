# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User repository.

Credential lifecycle helpers live here as single statements: password reset
consumption is a compare-and-set on the stored token hash, and email
verification flips the flag and promotes pending accounts in one UPDATE.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select

from src.infrastructure.database.models.user import User, UserStatus
from src.infrastructure.database.repositories.base import TenantScopedRepository
from src.utils.datetime import utc_now


def _normalize_email(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("email"):
        return {**data, "email": data["email"].strip().lower()}
    return data


class UserRepository(TenantScopedRepository[User]):
    """Tenant-scoped access to users."""

    model = User
    search_fields = ("first_name", "last_name", "email")
    sortable_fields = ("first_name", "last_name", "email", "created_at", "updated_at", "last_login")
    filterable_fields = ("role", "branch_id", "email_verified")
    status_field = "status"

    async def create(self, data: dict[str, Any]) -> User:
        """Insert a user. Email is stored lower-cased."""
        return await super().create(_normalize_email(data))

    async def update(self, id: str, tenant_id: str, patch: dict[str, Any]) -> User | None:
        return await super().update(id, tenant_id, _normalize_email(patch))

    async def find_by_email(self, email: str, tenant_id: str) -> User | None:
        return await self._find_one_where(tenant_id, User.email == email.strip().lower())

    async def find_by_role(self, role: str, tenant_id: str) -> list[User]:
        return await self._find_where(tenant_id, User.role == role)

    async def find_by_branch(self, branch_id: str, tenant_id: str) -> list[User]:
        return await self._find_where(tenant_id, User.branch_id == branch_id)

    async def find_coaches_by_branch(self, branch_id: str, tenant_id: str) -> list[User]:
        return await self._find_where(
            tenant_id,
            User.branch_id == branch_id,
            User.role == "coach",
            order_by=(User.first_name, User.last_name),
        )

    async def update_status(self, id: str, tenant_id: str, status: UserStatus | str) -> User | None:
        return await self._update_where(
            tenant_id,
            User.id == id,
            values={"status": UserStatus(status).value},
        )

    async def update_last_login(self, id: str, tenant_id: str) -> User | None:
        return await self._update_where(tenant_id, User.id == id, values={"last_login": utc_now()})

    async def update_password(self, id: str, tenant_id: str, password_hash: str) -> User | None:
        """Store a new hash and drop any pending reset token."""
        return await self._update_where(
            tenant_id,
            User.id == id,
            values={
                "password_hash": password_hash,
                "password_reset_token": None,
                "password_reset_expires": None,
            },
        )

    # =========================================================================
    # Email Verification
    # =========================================================================

    async def set_email_verification_token(self, id: str, tenant_id: str, token_hash: str) -> None:
        await self._update_where(
            tenant_id,
            User.id == id,
            values={"email_verification_token": token_hash},
        )

    async def verify_email(self, token_hash: str, tenant_id: str) -> User | None:
        """Mark the address verified if the token still matches.

        Pending accounts become active. Other statuses are left alone, so a
        suspended user stays suspended.

        Returns:
            The updated user, or None if no user holds this token.
        """
        return await self._update_where(
            tenant_id,
            User.email_verification_token == token_hash,
            values={
                "email_verified": True,
                "email_verification_token": None,
                "status": case(
                    (User.status == UserStatus.PENDING.value, UserStatus.ACTIVE.value),
                    else_=User.status,
                ),
            },
        )

    # =========================================================================
    # Password Reset
    # =========================================================================

    async def set_password_reset_token(
        self,
        id: str,
        tenant_id: str,
        token_hash: str,
        expires: datetime,
    ) -> None:
        await self._update_where(
            tenant_id,
            User.id == id,
            values={"password_reset_token": token_hash, "password_reset_expires": expires},
        )

    async def find_by_password_reset_token(self, token_hash: str, tenant_id: str) -> User | None:
        """Find the holder of an unexpired reset token."""
        return await self._find_one_where(
            tenant_id,
            User.password_reset_token == token_hash,
            User.password_reset_expires > utc_now(),
        )

    async def consume_password_reset_token(
        self,
        token_hash: str,
        tenant_id: str,
        password_hash: str,
    ) -> User | None:
        """Replace the password if the reset token is still valid.

        The token check and the write are one statement, so a token can be
        used at most once even under concurrent requests.

        Returns:
            The updated user, or None if the token is unknown, used or expired.
        """
        return await self._update_where(
            tenant_id,
            User.password_reset_token == token_hash,
            User.password_reset_expires > utc_now(),
            values={
                "password_hash": password_hash,
                "password_reset_token": None,
                "password_reset_expires": None,
            },
        )

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_stats(self, tenant_id: str) -> dict[str, Any]:
        """Count users of a tenant, overall, active and per role."""
        totals = await self._session.execute(
            select(
                func.count(User.id),
                func.count(case((User.status == UserStatus.ACTIVE.value, 1))),
            ).where(User.tenant_id == self._require_tenant(tenant_id))
        )
        total, active = totals.one()

        by_role_rows = await self._session.execute(
            select(User.role, func.count(User.id))
            .where(User.tenant_id == tenant_id)
            .group_by(User.role)
        )

        return {
            "total": int(total),
            "active": int(active),
            "by_role": {role: int(count) for role, count in by_role_rows.all()},
        }
