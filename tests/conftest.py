# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests

Test defaults are written to the environment before any application module
is imported, so the cached settings and the password hasher pick them up.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("JWT_SECRET_KEY", "test-access-secret-key-for-testing-only")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret-key-for-testing-only")
os.environ.setdefault("AUTH_BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from typing import Any  # noqa: E402

import pytest  # noqa: E402
from pydantic import SecretStr  # noqa: E402

from src.core.config.settings import AuthSettings, JWTSettings  # noqa: E402
from src.domains.auth.jwt import JWTManager  # noqa: E402
from src.domains.auth.password import PasswordHasher  # noqa: E402


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a database)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """Create JWT settings with test secrets."""
    return JWTSettings(
        secret_key=SecretStr("test-access-secret-key-for-testing-only"),
        refresh_secret_key=SecretStr("test-refresh-secret-key-for-testing-only"),
        expires_in="15m",
        refresh_expires_in="7d",
    )


@pytest.fixture
def jwt_manager(jwt_settings: JWTSettings) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


@pytest.fixture
def password_hasher() -> PasswordHasher:
    """Create a fast password hasher."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def auth_settings() -> AuthSettings:
    """Create auth settings for tests."""
    return AuthSettings(bcrypt_rounds=4)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_tenant_id() -> str:
    """Provide a sample tenant ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_user_id() -> str:
    """Provide a sample user ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_branch_id() -> str:
    """Provide a sample branch ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440002"


@pytest.fixture
def sample_registration() -> dict[str, Any]:
    """Provide a sample registration body for testing."""
    return {
        "email": "new.student@example.com",
        "password": "strong-password-1",
        "firstName": "New",
        "lastName": "Student",
        "role": "student",
        "tenantDomain": "demo.jiu-jitsu.com",
    }
