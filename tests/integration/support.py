# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared helpers for integration tests."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from src.domains.auth.notifier import AuthNotifier, TokenDelivery, TokenPurpose
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import Branch, Tenant, User
from src.utils.datetime import utc_now

PASSWORD = "password123"


class RecordingNotifier(AuthNotifier):
    """Notifier that keeps deliveries for assertions."""

    def __init__(self) -> None:
        self.deliveries: list[TokenDelivery] = []

    async def send(self, delivery: TokenDelivery) -> None:
        self.deliveries.append(delivery)

    def last_token(self, purpose: TokenPurpose) -> str:
        for delivery in reversed(self.deliveries):
            if delivery.purpose == purpose:
                return delivery.token
        raise AssertionError(f"No {purpose.value} token delivered")


@dataclass
class Academy:
    """Ids of the seeded rows."""

    tenant_id: str
    other_tenant_id: str
    branch_id: str
    second_branch_id: str
    other_branch_id: str
    system_manager_id: str
    branch_manager_id: str
    coach_id: str
    student_id: str
    other_student_id: str


def make_branch(tenant_id: str, name: str) -> Branch:
    return Branch(
        tenant_id=tenant_id,
        name=name,
        address=f"Rua {name}, 100",
        city="Rio de Janeiro",
        state="RJ",
        country="Brazil",
        postal_code="20000-000",
    )


def make_user(
    tenant_id: str,
    email: str,
    role: str,
    branch_id: str | None,
    password_hash: str,
) -> User:
    return User(
        tenant_id=tenant_id,
        email=email,
        password_hash=password_hash,
        first_name=role.replace("_", " ").title().split()[0],
        last_name="Silva",
        role=role,
        status="active",
        branch_id=branch_id,
        email_verified=True,
    )


async def seed_academy(database: Database, password_hash: str) -> Academy:
    """Create two tenants with branches and users."""
    async with database.session() as session:
        demo = Tenant(
            name="Demo Academy",
            domain="demo.jiu-jitsu.com",
            plan="professional",
            contact_email="owner@demo-academy.com",
        )
        rival = Tenant(
            name="Rival Academy",
            domain="rival.jiu-jitsu.com",
            contact_email="owner@rival-academy.com",
        )
        session.add_all([demo, rival])
        await session.flush()

        centro = make_branch(demo.id, "Centro")
        norte = make_branch(demo.id, "Norte")
        rival_branch = make_branch(rival.id, "Rival HQ")
        session.add_all([centro, norte, rival_branch])
        await session.flush()

        users = {
            "system_manager": make_user(demo.id, "admin@demo-academy.com", "system_manager", None, password_hash),
            "branch_manager": make_user(demo.id, "manager@demo-academy.com", "branch_manager", centro.id, password_hash),
            "coach": make_user(demo.id, "coach@demo-academy.com", "coach", centro.id, password_hash),
            "student": make_user(demo.id, "student@demo-academy.com", "student", centro.id, password_hash),
            "other_student": make_user(rival.id, "student@demo-academy.com", "student", rival_branch.id, password_hash),
        }
        session.add_all(users.values())
        await session.flush()

        return Academy(
            tenant_id=demo.id,
            other_tenant_id=rival.id,
            branch_id=centro.id,
            second_branch_id=norte.id,
            other_branch_id=rival_branch.id,
            system_manager_id=users["system_manager"].id,
            branch_manager_id=users["branch_manager"].id,
            coach_id=users["coach"].id,
            student_id=users["student"].id,
            other_student_id=users["other_student"].id,
        )


async def expire_license(database: Database, tenant_id: str) -> None:
    """Move a tenant's license end into the past."""
    async with database.session() as session:
        tenant = await session.get(Tenant, tenant_id)
        tenant.license_end = utc_now() - timedelta(days=1)


async def update_row(database: Database, model: type, row_id: str, **values: Any) -> None:
    """Overwrite columns of a seeded row."""
    async with database.session() as session:
        row = await session.get(model, row_id)
        for name, value in values.items():
            setattr(row, name, value)
