# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for tenants, users, branches and classes."""

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin
from src.infrastructure.database.models.branch import Branch
from src.infrastructure.database.models.class_ import Class, ClassStatus
from src.infrastructure.database.models.tenant import LicensePlan, Tenant
from src.infrastructure.database.models.user import User, UserStatus

__all__ = [
    "Base",
    "Branch",
    "Class",
    "ClassStatus",
    "LicensePlan",
    "Tenant",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "UserStatus",
]
