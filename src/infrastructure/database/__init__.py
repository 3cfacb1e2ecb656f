# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

This package provides the explicit store handle, the ORM models and the
tenant-scoped repositories built on them.

Example:
    from src.infrastructure.database import Database, UserRepository

    database = Database.from_settings(settings.database)
    await database.init()

    async with database.session() as session:
        user = await UserRepository(session).find_by_id(user_id, tenant_id)
"""

from src.infrastructure.database.connection import Database, DatabaseError
from src.infrastructure.database.repositories import (
    BranchRepository,
    ClassRepository,
    ConstraintViolationError,
    DuplicateRecordError,
    InvalidQueryError,
    InvalidReferenceError,
    ListFilters,
    Page,
    PageParams,
    RepositoryError,
    TenantRepository,
    TenantScopedRepository,
    UserRepository,
)

__all__ = [
    "BranchRepository",
    "ClassRepository",
    "Database",
    "DatabaseError",
    "ConstraintViolationError",
    "DuplicateRecordError",
    "InvalidQueryError",
    "InvalidReferenceError",
    "ListFilters",
    "Page",
    "PageParams",
    "RepositoryError",
    "TenantRepository",
    "TenantScopedRepository",
    "UserRepository",
]
