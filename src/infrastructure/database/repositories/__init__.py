# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant-scoped repositories."""

from src.infrastructure.database.repositories.base import (
    ConstraintViolationError,
    DuplicateRecordError,
    InvalidQueryError,
    InvalidReferenceError,
    ListFilters,
    Page,
    PageParams,
    RepositoryError,
    TenantScopedRepository,
)
from src.infrastructure.database.repositories.branch import BranchRepository
from src.infrastructure.database.repositories.class_ import ClassRepository
from src.infrastructure.database.repositories.tenant import TenantRepository
from src.infrastructure.database.repositories.user import UserRepository

__all__ = [
    "BranchRepository",
    "ClassRepository",
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
