# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the user management endpoints."""

import pytest
from httpx import AsyncClient

from tests.integration.support import Academy

API = "/api/v1/users"


def _new_user(**overrides) -> dict:
    body = {
        "email": "fresh.coach@demo-academy.com",
        "password": "strong-password-1",
        "first_name": "Fresh",
        "last_name": "Coach",
        "role": "coach",
    }
    body.update(overrides)
    return body


class TestListUsers:
    """Tests for GET /users."""

    @pytest.mark.asyncio
    async def test_list_with_pagination(self, client: AsyncClient, auth_headers) -> None:
        """Test that the list carries pagination metadata."""
        response = await client.get(f"{API}?page=1&limit=3", headers=auth_headers("coach"))

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 3
        assert body["pagination"] == {"page": 1, "limit": 3, "total": 4, "totalPages": 2}

    @pytest.mark.asyncio
    async def test_list_only_own_tenant(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that users of other tenants never appear."""
        response = await client.get(f"{API}?limit=100", headers=auth_headers("system_manager"))

        ids = {user["id"] for user in response.json()["data"]}
        assert academy.other_student_id not in ids
        assert {user["tenant_id"] for user in response.json()["data"]} == {academy.tenant_id}

    @pytest.mark.asyncio
    async def test_list_filters(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test role and search filters."""
        by_role = await client.get(f"{API}?role=student", headers=auth_headers("coach"))
        by_search = await client.get(f"{API}?search=MANAGER@", headers=auth_headers("coach"))

        assert [user["id"] for user in by_role.json()["data"]] == [academy.student_id]
        assert [user["id"] for user in by_search.json()["data"]] == [academy.branch_manager_id]

    @pytest.mark.asyncio
    async def test_student_cannot_list(self, client: AsyncClient, auth_headers) -> None:
        """Test that listing requires coach or above."""
        response = await client.get(API, headers=auth_headers("student"))

        assert response.status_code == 403
        assert response.json()["error"] == "Insufficient permissions"

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client: AsyncClient, academy: Academy) -> None:
        """Test that listing requires a token."""
        response = await client.get(API)

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_limit(self, client: AsyncClient, auth_headers) -> None:
        """Test that an out-of-range page size answers 400."""
        response = await client.get(f"{API}?limit=500", headers=auth_headers("coach"))

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_unknown_sort_field(self, client: AsyncClient, auth_headers) -> None:
        """Test that sorting by an undeclared column answers 400."""
        response = await client.get(f"{API}?sort_by=password_hash", headers=auth_headers("coach"))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, auth_headers) -> None:
        """Test user statistics."""
        response = await client.get(f"{API}/stats", headers=auth_headers("coach"))

        assert response.status_code == 200
        assert response.json()["data"]["total"] == 4

    @pytest.mark.asyncio
    async def test_by_role(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test listing users of one role."""
        response = await client.get(f"{API}/role/coach", headers=auth_headers("coach"))

        assert [user["id"] for user in response.json()["data"]] == [academy.coach_id]


class TestGetUser:
    """Tests for GET /users/{id}."""

    @pytest.mark.asyncio
    async def test_student_reads_self(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that students read their own record."""
        response = await client.get(f"{API}/{academy.student_id}", headers=auth_headers("student"))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "student@demo-academy.com"

    @pytest.mark.asyncio
    async def test_student_cannot_read_others(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that students cannot read other users."""
        response = await client.get(f"{API}/{academy.coach_id}", headers=auth_headers("student"))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_tenant_user_not_found(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that a user of another tenant looks missing."""
        response = await client.get(f"{API}/{academy.other_student_id}", headers=auth_headers("system_manager"))

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "User not found", "code": "not_found"}


class TestCreateUser:
    """Tests for POST /users."""

    @pytest.mark.asyncio
    async def test_branch_manager_creates_coach(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that a branch manager creates a coach at their branch."""
        response = await client.post(
            API,
            json=_new_user(branch_id=academy.branch_id),
            headers=auth_headers("branch_manager"),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["tenant_id"] == academy.tenant_id
        assert data["role"] == "coach"
        assert "password" not in data

    @pytest.mark.asyncio
    async def test_cannot_assign_higher_role(self, client: AsyncClient, auth_headers) -> None:
        """Test that a branch manager cannot create a system manager."""
        response = await client.post(
            API,
            json=_new_user(role="system_manager"),
            headers=auth_headers("branch_manager"),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cannot_create_at_other_branch(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that a branch manager stays within their branch."""
        response = await client.post(
            API,
            json=_new_user(branch_id=academy.second_branch_id),
            headers=auth_headers("branch_manager"),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_coach_cannot_create(self, client: AsyncClient, auth_headers) -> None:
        """Test that creating users requires branch manager or above."""
        response = await client.post(API, json=_new_user(role="student"), headers=auth_headers("coach"))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient, auth_headers) -> None:
        """Test that a taken email answers 400 duplicate_user."""
        response = await client.post(
            API,
            json=_new_user(email="coach@demo-academy.com"),
            headers=auth_headers("system_manager"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "duplicate_user"

    @pytest.mark.asyncio
    async def test_foreign_branch(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that a branch of another tenant answers 400."""
        response = await client.post(
            API,
            json=_new_user(branch_id=academy.other_branch_id),
            headers=auth_headers("system_manager"),
        )

        assert response.status_code == 400


class TestUpdateUser:
    """Tests for PUT /users/{id}."""

    @pytest.mark.asyncio
    async def test_student_updates_own_profile(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that students may change their own contact details."""
        response = await client.put(
            f"{API}/{academy.student_id}",
            json={"phone": "+55 21 98888-7777"},
            headers=auth_headers("student"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["phone"] == "+55 21 98888-7777"

    @pytest.mark.asyncio
    async def test_student_cannot_promote_self(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that students cannot change their own role or status."""
        role = await client.put(
            f"{API}/{academy.student_id}",
            json={"role": "coach"},
            headers=auth_headers("student"),
        )
        status = await client.put(
            f"{API}/{academy.student_id}",
            json={"status": "active"},
            headers=auth_headers("student"),
        )

        assert role.status_code == 403
        assert status.status_code == 403

    @pytest.mark.asyncio
    async def test_student_cannot_update_others(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that students cannot update other users."""
        response = await client.put(
            f"{API}/{academy.coach_id}",
            json={"first_name": "Changed"},
            headers=auth_headers("student"),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_suspends_student(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that branch managers may change status."""
        response = await client.put(
            f"{API}/{academy.student_id}",
            json={"status": "suspended"},
            headers=auth_headers("branch_manager"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "suspended"

    @pytest.mark.asyncio
    async def test_update_other_tenant_not_found(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that users of another tenant cannot be updated."""
        response = await client.put(
            f"{API}/{academy.other_student_id}",
            json={"first_name": "Changed"},
            headers=auth_headers("system_manager"),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["first_name", "last_name", "email", "role", "status"])
    async def test_null_required_field_rejected(
        self,
        client: AsyncClient,
        academy: Academy,
        auth_headers,
        field: str,
    ) -> None:
        """Test that required fields cannot be cleared."""
        response = await client.put(
            f"{API}/{academy.student_id}",
            json={field: None},
            headers=auth_headers("system_manager"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_optional_field_cleared(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that nullable fields accept an explicit null."""
        await client.put(
            f"{API}/{academy.student_id}",
            json={"phone": "+55 21 98888-7777"},
            headers=auth_headers("student"),
        )
        response = await client.put(
            f"{API}/{academy.student_id}",
            json={"phone": None},
            headers=auth_headers("student"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["phone"] is None

    @pytest.mark.asyncio
    async def test_coach_cannot_change_higher_rank_email(
        self,
        client: AsyncClient,
        academy: Academy,
        auth_headers,
    ) -> None:
        """Test that the email of a user who outranks the caller stays put."""
        response = await client.put(
            f"{API}/{academy.system_manager_id}",
            json={"email": "taken-over@example.com"},
            headers=auth_headers("coach"),
        )
        profile = await client.get(f"{API}/{academy.system_manager_id}", headers=auth_headers("system_manager"))

        assert response.status_code == 403
        assert profile.json()["data"]["email"] == "admin@demo-academy.com"

    @pytest.mark.asyncio
    async def test_coach_changes_student_email(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that lower-ranked users' emails remain editable."""
        response = await client.put(
            f"{API}/{academy.student_id}",
            json={"email": "student.new@demo-academy.com"},
            headers=auth_headers("coach"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "student.new@demo-academy.com"

    @pytest.mark.asyncio
    async def test_users_change_own_email(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that callers may always change their own email."""
        response = await client.put(
            f"{API}/{academy.coach_id}",
            json={"email": "coach.new@demo-academy.com"},
            headers=auth_headers("coach"),
        )

        assert response.status_code == 200


class TestDeleteUser:
    """Tests for DELETE /users/{id}."""

    @pytest.mark.asyncio
    async def test_system_manager_deletes(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that deleting twice answers 200 then 404."""
        first = await client.delete(f"{API}/{academy.student_id}", headers=auth_headers("system_manager"))
        second = await client.delete(f"{API}/{academy.student_id}", headers=auth_headers("system_manager"))

        assert first.status_code == 200
        assert second.status_code == 404

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that a system manager cannot delete their own account."""
        response = await client.delete(f"{API}/{academy.system_manager_id}", headers=auth_headers("system_manager"))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_branch_manager_cannot_delete(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that deleting requires system manager."""
        response = await client.delete(f"{API}/{academy.student_id}", headers=auth_headers("branch_manager"))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cross_tenant_token(self, client: AsyncClient, academy: Academy, auth_headers) -> None:
        """Test that a token of another tenant cannot reach this tenant's users."""
        response = await client.delete(
            f"{API}/{academy.student_id}",
            headers=auth_headers("system_manager", tenant_id=academy.other_tenant_id),
        )

        assert response.status_code == 404
