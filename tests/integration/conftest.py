# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for integration tests.

Provides an isolated database per test and a seeded academy:

- ``demo.jiu-jitsu.com`` with two branches and one user of every role
- ``rival.jiu-jitsu.com`` with one branch and a student who shares an
  email address with the demo student

Tests run on a temporary SQLite file through aiosqlite unless
TEST_DATABASE_URL points somewhere else.
"""

import os
from pathlib import Path
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.app import create_app
from src.core.config import Settings, get_settings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.connection import Database
from tests.integration.support import PASSWORD, Academy, RecordingNotifier, seed_academy


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Get database URL for tests."""
    return os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'academy_test.db'}",
    )


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncGenerator[Database, None]:
    """Create an initialized database with a fresh schema."""
    db = Database(database_url)
    await db.init()
    await db.drop_schema()
    await db.create_schema()

    yield db

    await db.drop_schema()
    await db.teardown()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create async session for database tests."""
    async with database.sessionmaker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def academy(database: Database, password_hasher: PasswordHasher) -> Academy:
    """Seed two tenants with branches and users."""
    return await seed_academy(database, password_hasher.hash(PASSWORD))


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Create a notifier that records deliveries."""
    return RecordingNotifier()


@pytest.fixture
def app_settings() -> Settings:
    """Get the test settings."""
    return get_settings()


@pytest.fixture
def app_jwt_manager(app_settings: Settings) -> JWTManager:
    """Create a JWT manager that agrees with the application's."""
    return JWTManager(app_settings.jwt)


@pytest_asyncio.fixture
async def client(
    database: Database,
    app_settings: Settings,
    notifier: RecordingNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an HTTP client bound to an application on the test database."""
    app = create_app(app_settings, database=database, notifier=notifier)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def auth_headers(academy: Academy, app_jwt_manager: JWTManager) -> Callable[..., dict[str, str]]:
    """Build Authorization headers for a seeded user.

    Usage:
        headers = auth_headers("coach")
    """
    user_ids = {
        "system_manager": academy.system_manager_id,
        "branch_manager": academy.branch_manager_id,
        "coach": academy.coach_id,
        "student": academy.student_id,
    }

    def _headers(role: str, tenant_id: str | None = None, branch_id: str | None = None) -> dict[str, str]:
        if branch_id is None and role != "system_manager":
            branch_id = academy.branch_id
        token = app_jwt_manager.issue_access_token(
            user_id=user_ids[role],
            tenant_id=tenant_id or academy.tenant_id,
            role=role,
            email=f"{role}@demo-academy.com",
            branch_id=branch_id,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
