# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for tenant-scoped repositories."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.repositories import (
    BranchRepository,
    ClassRepository,
    ConstraintViolationError,
    DuplicateRecordError,
    InvalidQueryError,
    InvalidReferenceError,
    ListFilters,
    PageParams,
    TenantRepository,
    TenantScopedRepository,
    UserRepository,
)
from src.utils.datetime import minutes_from_now, utc_now
from tests.integration.support import Academy


def _class_payload(academy: Academy, **overrides) -> dict:
    start = utc_now() + timedelta(days=1)
    return {
        "tenant_id": academy.tenant_id,
        "name": "Fundamentals",
        "branch_id": academy.branch_id,
        "coach_id": academy.coach_id,
        "modality": "gi",
        "start_time": start,
        "end_time": start + timedelta(hours=1),
        "max_capacity": 2,
        **overrides,
    }


ENTITY_KINDS = ["user", "branch", "class", "tenant"]


async def _owned_row(kind: str, session: AsyncSession, academy: Academy) -> tuple[TenantScopedRepository, str, str]:
    """Return a repository, the id of a demo-tenant row and a text column of it."""
    if kind == "user":
        return UserRepository(session), academy.student_id, "first_name"
    if kind == "branch":
        return BranchRepository(session), academy.second_branch_id, "name"
    if kind == "tenant":
        return TenantRepository(session), academy.tenant_id, "name"

    repo = ClassRepository(session)
    class_ = await repo.create(_class_payload(academy))
    return repo, class_.id, "name"


class TestTenantIsolation:
    """Tests that no operation crosses tenants."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ENTITY_KINDS)
    async def test_find_by_id_other_tenant_is_none(
        self,
        db_session: AsyncSession,
        academy: Academy,
        kind: str,
    ) -> None:
        """Test that a row of another tenant looks like a missing row."""
        repo, row_id, _ = await _owned_row(kind, db_session, academy)

        assert await repo.find_by_id(row_id, academy.tenant_id) is not None
        assert await repo.find_by_id(row_id, academy.other_tenant_id) is None
        assert await repo.exists(row_id, academy.other_tenant_id) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ENTITY_KINDS)
    async def test_update_other_tenant_is_none(
        self,
        db_session: AsyncSession,
        academy: Academy,
        kind: str,
    ) -> None:
        """Test that an update scoped to another tenant changes nothing."""
        repo, row_id, column = await _owned_row(kind, db_session, academy)

        result = await repo.update(row_id, academy.other_tenant_id, {column: "Hijacked"})
        row = await repo.find_by_id(row_id, academy.tenant_id)

        assert result is None
        assert getattr(row, column) != "Hijacked"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ENTITY_KINDS)
    async def test_delete_other_tenant_is_false(
        self,
        db_session: AsyncSession,
        academy: Academy,
        kind: str,
    ) -> None:
        """Test that a delete scoped to another tenant removes nothing."""
        repo, row_id, _ = await _owned_row(kind, db_session, academy)

        assert await repo.delete(row_id, academy.other_tenant_id) is False
        assert await repo.exists(row_id, academy.tenant_id) is True

    @pytest.mark.asyncio
    async def test_find_all_only_own_tenant(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that listings never include rows of another tenant."""
        repo = UserRepository(db_session)

        page = await repo.find_all(academy.tenant_id, PageParams(limit=100))

        assert page.total == 4
        assert {user.tenant_id for user in page.items} == {academy.tenant_id}

    @pytest.mark.asyncio
    async def test_same_email_in_two_tenants(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that email lookups are per tenant."""
        repo = UserRepository(db_session)

        demo = await repo.find_by_email("Student@Demo-Academy.com", academy.tenant_id)
        rival = await repo.find_by_email("student@demo-academy.com", academy.other_tenant_id)

        assert demo.id == academy.student_id
        assert rival.id == academy.other_student_id

    @pytest.mark.asyncio
    async def test_missing_tenant_id_rejected(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that an empty tenant id is refused."""
        repo = UserRepository(db_session)

        with pytest.raises(InvalidQueryError):
            await repo.find_by_id(academy.student_id, "")

    @pytest.mark.asyncio
    async def test_tenant_repository_scopes_by_own_id(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a tenant only reaches its own record."""
        repo = TenantRepository(db_session)

        assert await repo.find_by_id(academy.tenant_id, academy.tenant_id) is not None
        assert await repo.find_by_id(academy.other_tenant_id, academy.tenant_id) is None


class TestGenericOperations:
    """Tests for create, update, delete and listing."""

    @pytest.mark.asyncio
    async def test_create_requires_tenant(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that create needs a tenant id in the payload."""
        repo = BranchRepository(db_session)

        with pytest.raises(InvalidQueryError):
            await repo.create({"name": "No Tenant"})

    @pytest.mark.asyncio
    async def test_create_unknown_column_rejected(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that unknown columns are refused."""
        repo = BranchRepository(db_session)

        with pytest.raises(InvalidQueryError):
            await repo.create({"tenant_id": academy.tenant_id, "colour": "red"})

    @pytest.mark.asyncio
    async def test_update_immutable_field_rejected(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that the tenant of a row cannot be changed."""
        repo = UserRepository(db_session)

        with pytest.raises(InvalidQueryError):
            await repo.update(academy.student_id, academy.tenant_id, {"tenant_id": academy.other_tenant_id})

    @pytest.mark.asyncio
    async def test_update_changes_fields_and_timestamp(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a partial update writes the patch and bumps updated_at."""
        repo = UserRepository(db_session)
        before = await repo.find_by_id(academy.coach_id, academy.tenant_id)
        previous_update = before.updated_at

        updated = await repo.update(academy.coach_id, academy.tenant_id, {"phone": "+55 21 99999-0000"})

        assert updated.phone == "+55 21 99999-0000"
        assert updated.first_name == before.first_name
        assert updated.updated_at >= previous_update

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that deleting twice returns True then False."""
        repo = BranchRepository(db_session)

        assert await repo.delete(academy.second_branch_id, academy.tenant_id) is True
        assert await repo.delete(academy.second_branch_id, academy.tenant_id) is False

    @pytest.mark.asyncio
    async def test_duplicate_email_in_tenant(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a second user with the same email in one tenant is refused."""
        repo = UserRepository(db_session)

        with pytest.raises(DuplicateRecordError):
            await repo.create(
                {
                    "tenant_id": academy.tenant_id,
                    "email": "COACH@demo-academy.com",
                    "password_hash": "x",
                    "first_name": "Other",
                    "last_name": "Coach",
                    "role": "coach",
                }
            )

    @pytest.mark.asyncio
    async def test_unknown_branch_reference(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a foreign key to a missing branch is refused."""
        repo = UserRepository(db_session)

        with pytest.raises(InvalidReferenceError):
            await repo.create(
                {
                    "tenant_id": academy.tenant_id,
                    "email": "lost@demo-academy.com",
                    "password_hash": "x",
                    "first_name": "Lost",
                    "last_name": "User",
                    "role": "student",
                    "branch_id": "00000000-0000-0000-0000-000000000000",
                }
            )

    @pytest.mark.asyncio
    async def test_null_in_required_column(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that clearing a NOT NULL column is a constraint violation, not a bad reference."""
        repo = BranchRepository(db_session)

        with pytest.raises(ConstraintViolationError):
            await repo.update(academy.branch_id, academy.tenant_id, {"name": None})

        branch = await repo.find_by_id(academy.branch_id, academy.tenant_id)
        assert branch.name == "Centro"


class TestListing:
    """Tests for pagination, search and filters."""

    @pytest.mark.asyncio
    async def test_total_matches_count(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that the page total equals count under the same filters."""
        repo = UserRepository(db_session)
        filters = ListFilters(search="demo-academy", status="active")

        page = await repo.find_all(academy.tenant_id, PageParams(page=2, limit=3), filters)

        assert page.total == await repo.count(academy.tenant_id, filters)
        assert page.total == 4
        assert len(page.items) == 1
        assert page.total_pages == 2

    @pytest.mark.asyncio
    async def test_pages_do_not_overlap(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that consecutive pages partition the result."""
        repo = UserRepository(db_session)

        first = await repo.find_all(academy.tenant_id, PageParams(page=1, limit=2, sort_by="email", sort_order="asc"))
        second = await repo.find_all(academy.tenant_id, PageParams(page=2, limit=2, sort_by="email", sort_order="asc"))

        emails = [user.email for user in first.items + second.items]
        assert emails == sorted(emails)
        assert len(set(emails)) == 4

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that search matches regardless of case."""
        repo = UserRepository(db_session)

        page = await repo.find_all(academy.tenant_id, filters=ListFilters(search="COACH"))

        assert [user.id for user in page.items] == [academy.coach_id]

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that % and _ in search input match only themselves."""
        repo = UserRepository(db_session)

        percent = await repo.count(academy.tenant_id, ListFilters(search="%"))
        underscore = await repo.count(academy.tenant_id, ListFilters(search="_"))

        assert percent == 0
        assert underscore == 0

    @pytest.mark.asyncio
    async def test_equals_filter(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test exact-match filters."""
        repo = UserRepository(db_session)

        page = await repo.find_all(academy.tenant_id, filters=ListFilters(equals={"role": "student"}))

        assert [user.id for user in page.items] == [academy.student_id]

    @pytest.mark.asyncio
    async def test_unknown_filter_rejected(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that only declared columns can be filtered."""
        repo = UserRepository(db_session)

        with pytest.raises(InvalidQueryError):
            await repo.find_all(academy.tenant_id, filters=ListFilters(equals={"password_hash": "x"}))

    @pytest.mark.asyncio
    async def test_unknown_sort_rejected(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that only declared columns can be sorted on."""
        repo = UserRepository(db_session)

        with pytest.raises(InvalidQueryError):
            await repo.find_all(academy.tenant_id, PageParams(sort_by="password_hash"))

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 101}, {"sort_order": "sideways"}])
    def test_page_params_bounds(self, kwargs: dict) -> None:
        """Test that invalid pagination is refused."""
        with pytest.raises(InvalidQueryError):
            PageParams(**kwargs)

    @pytest.mark.asyncio
    async def test_branch_status_filter(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test the boolean status mapping of branches."""
        repo = BranchRepository(db_session)
        await repo.update(academy.second_branch_id, academy.tenant_id, {"is_active": False})

        active = await repo.count(academy.tenant_id, ListFilters(status="active"))
        inactive = await repo.count(academy.tenant_id, ListFilters(status="inactive"))

        assert (active, inactive) == (1, 1)


class TestCredentialTokens:
    """Tests for reset and verification token statements."""

    @pytest.mark.asyncio
    async def test_reset_token_consumed_once(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a reset token works exactly once."""
        repo = UserRepository(db_session)
        await repo.set_password_reset_token(academy.student_id, academy.tenant_id, "hash-1", minutes_from_now(60))

        first = await repo.consume_password_reset_token("hash-1", academy.tenant_id, "new-hash")
        second = await repo.consume_password_reset_token("hash-1", academy.tenant_id, "other-hash")

        assert first.password_hash == "new-hash"
        assert first.password_reset_token is None
        assert second is None

    @pytest.mark.asyncio
    async def test_expired_reset_token_refused(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that an expired reset token changes nothing."""
        repo = UserRepository(db_session)
        await repo.set_password_reset_token(
            academy.student_id, academy.tenant_id, "hash-2", utc_now() - timedelta(minutes=1)
        )

        assert await repo.find_by_password_reset_token("hash-2", academy.tenant_id) is None
        assert await repo.consume_password_reset_token("hash-2", academy.tenant_id, "new-hash") is None

    @pytest.mark.asyncio
    async def test_reset_token_bound_to_tenant(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a token cannot be consumed through another tenant."""
        repo = UserRepository(db_session)
        await repo.set_password_reset_token(academy.student_id, academy.tenant_id, "hash-3", minutes_from_now(60))

        assert await repo.consume_password_reset_token("hash-3", academy.other_tenant_id, "new-hash") is None

    @pytest.mark.asyncio
    async def test_verify_email_activates_pending(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that verification activates a pending account."""
        repo = UserRepository(db_session)
        await repo.update(academy.student_id, academy.tenant_id, {"status": "pending", "email_verified": False})
        await repo.set_email_verification_token(academy.student_id, academy.tenant_id, "verify-1")

        user = await repo.verify_email("verify-1", academy.tenant_id)

        assert user.email_verified is True
        assert user.status == "active"
        assert user.email_verification_token is None
        assert await repo.verify_email("verify-1", academy.tenant_id) is None

    @pytest.mark.asyncio
    async def test_verify_email_keeps_suspension(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that verification does not lift a suspension."""
        repo = UserRepository(db_session)
        await repo.update_status(academy.student_id, academy.tenant_id, "suspended")
        await repo.set_email_verification_token(academy.student_id, academy.tenant_id, "verify-2")

        user = await repo.verify_email("verify-2", academy.tenant_id)

        assert user.status == "suspended"


class TestClassRepository:
    """Tests for class scheduling queries."""

    @pytest.mark.asyncio
    async def test_enrollment_capped_at_capacity(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that increment stops at max capacity."""
        repo = ClassRepository(db_session)
        class_ = await repo.create(_class_payload(academy))

        assert (await repo.increment_enrollment(class_.id, academy.tenant_id)).current_enrollment == 1
        assert (await repo.increment_enrollment(class_.id, academy.tenant_id)).current_enrollment == 2
        assert await repo.increment_enrollment(class_.id, academy.tenant_id) is None

    @pytest.mark.asyncio
    async def test_decrement_floors_at_zero(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that decrement never goes negative."""
        repo = ClassRepository(db_session)
        class_ = await repo.create(_class_payload(academy))

        updated = await repo.decrement_enrollment(class_.id, academy.tenant_id)

        assert updated.current_enrollment == 0

    @pytest.mark.asyncio
    async def test_upcoming_excludes_past(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that only future classes are upcoming, soonest first."""
        repo = ClassRepository(db_session)
        past_start = utc_now() - timedelta(days=1)
        await repo.create(_class_payload(academy, name="Past", start_time=past_start, end_time=past_start + timedelta(hours=1)))
        later = await repo.create(_class_payload(academy, name="Later", start_time=utc_now() + timedelta(days=3), end_time=utc_now() + timedelta(days=3, hours=1)))
        sooner = await repo.create(_class_payload(academy, name="Sooner"))

        upcoming = await repo.find_upcoming(academy.tenant_id)

        assert [class_.id for class_ in upcoming] == [sooner.id, later.id]

    @pytest.mark.asyncio
    async def test_stats(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test class counts per status and enrollment totals."""
        repo = ClassRepository(db_session)
        first = await repo.create(_class_payload(academy))
        second = await repo.create(_class_payload(academy, name="No-Gi", modality="no-gi"))
        await repo.increment_enrollment(first.id, academy.tenant_id)
        await repo.update_status(second.id, academy.tenant_id, "cancelled")

        stats = await repo.get_stats(academy.tenant_id)

        assert stats["total"] == 2
        assert stats["scheduled"] == 1
        assert stats["cancelled"] == 1
        assert stats["total_enrollments"] == 1
        assert stats["average_enrollment"] == 0.5


class TestStats:
    """Tests for tenant and user statistics."""

    @pytest.mark.asyncio
    async def test_user_stats(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test user counts per role."""
        stats = await UserRepository(db_session).get_stats(academy.tenant_id)

        assert stats["total"] == 4
        assert stats["active"] == 4
        assert stats["by_role"] == {"system_manager": 1, "branch_manager": 1, "coach": 1, "student": 1}

    @pytest.mark.asyncio
    async def test_tenant_stats(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test tenant totals."""
        stats = await TenantRepository(db_session).get_stats(academy.tenant_id)

        assert stats == {"total_users": 4, "active_users": 4, "total_branches": 2, "total_classes": 0}

    @pytest.mark.asyncio
    async def test_domain_lookup_normalized(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that domain lookups ignore case and surrounding spaces."""
        tenant = await TenantRepository(db_session).find_by_domain("  DEMO.jiu-jitsu.com ")

        assert tenant.id == academy.tenant_id


class TestScheduleQueries:
    """Tests for the class and branch lookups used by scheduling."""

    @pytest.mark.asyncio
    async def test_find_by_branch_coach_and_modality(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test the per-branch, per-coach and per-modality lookups."""
        repo = ClassRepository(db_session)
        gi = await repo.create(_class_payload(academy))
        nogi = await repo.create(
            _class_payload(academy, name="No-Gi", modality="no-gi", branch_id=academy.second_branch_id)
        )

        assert [c.id for c in await repo.find_by_branch(academy.branch_id, academy.tenant_id)] == [gi.id]
        assert [c.id for c in await repo.find_by_modality("no-gi", academy.tenant_id)] == [nogi.id]
        assert len(await repo.find_by_coach(academy.coach_id, academy.tenant_id)) == 2
        assert await repo.find_by_coach(academy.coach_id, academy.other_tenant_id) == []

    @pytest.mark.asyncio
    async def test_find_by_date_range(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that only classes starting inside the window are returned."""
        repo = ClassRepository(db_session)
        tomorrow = await repo.create(_class_payload(academy))
        next_week_start = utc_now() + timedelta(days=7)
        await repo.create(
            _class_payload(
                academy,
                name="Next Week",
                start_time=next_week_start,
                end_time=next_week_start + timedelta(hours=1),
            )
        )

        found = await repo.find_by_date_range(academy.tenant_id, utc_now(), utc_now() + timedelta(days=2))

        assert [c.id for c in found] == [tomorrow.id]

    @pytest.mark.asyncio
    async def test_find_available_skips_full(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that full classes are not available."""
        repo = ClassRepository(db_session)
        full = await repo.create(_class_payload(academy, max_capacity=1))
        open_ = await repo.create(_class_payload(academy, name="Open Mat"))
        await repo.increment_enrollment(full.id, academy.tenant_id)

        available = await repo.find_available(academy.tenant_id)

        assert [c.id for c in available] == [open_.id]

    @pytest.mark.asyncio
    async def test_find_branch_by_manager(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test looking up the branches a user manages."""
        repo = BranchRepository(db_session)
        await repo.update(academy.branch_id, academy.tenant_id, {"manager_id": academy.branch_manager_id})

        managed = await repo.find_by_manager(academy.branch_manager_id, academy.tenant_id)

        assert [b.id for b in managed] == [academy.branch_id]
        assert await repo.find_by_manager(academy.branch_manager_id, academy.other_tenant_id) == []


class TestTenantLicense:
    """Tests for tenant license and domain management."""

    @pytest.mark.asyncio
    async def test_domain_availability(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that a taken domain is only available to its own tenant."""
        repo = TenantRepository(db_session)

        assert await repo.is_domain_available("new.jiu-jitsu.com") is True
        assert await repo.is_domain_available("Demo.Jiu-Jitsu.com") is False
        assert await repo.is_domain_available("demo.jiu-jitsu.com", exclude_id=academy.tenant_id) is True

    @pytest.mark.asyncio
    async def test_update_license(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test changing the plan and license end."""
        end = utc_now() + timedelta(days=365)

        tenant = await TenantRepository(db_session).update_license(academy.tenant_id, "enterprise", end)

        assert tenant.plan == "enterprise"
        assert tenant.is_license_valid

    @pytest.mark.asyncio
    async def test_update_license_rejects_unknown_plan(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that an unknown plan raises."""
        with pytest.raises(ValueError):
            await TenantRepository(db_session).update_license(academy.tenant_id, "platinum", utc_now())

    @pytest.mark.asyncio
    async def test_expired_and_expiring(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that ended and soon-ending licenses are found."""
        repo = TenantRepository(db_session)
        await repo.update_license(academy.tenant_id, "professional", utc_now() - timedelta(days=1))
        await repo.update_license(academy.other_tenant_id, "basic", utc_now() + timedelta(days=3))

        expired = await repo.find_expired_tenants()
        expiring = await repo.find_expiring_tenants(days=7)

        assert [t.id for t in expired] == [academy.tenant_id]
        assert [t.id for t in expiring] == [academy.other_tenant_id]

    @pytest.mark.asyncio
    async def test_inactive_tenants_not_reported(self, db_session: AsyncSession, academy: Academy) -> None:
        """Test that deactivated tenants are left out of license reports."""
        repo = TenantRepository(db_session)
        await repo.update_license(academy.tenant_id, "professional", utc_now() - timedelta(days=1))
        await repo.update_status(academy.tenant_id, False)

        assert await repo.find_expired_tenants() == []
