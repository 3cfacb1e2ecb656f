# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User API schemas.

Password hashes and single-use token hashes never appear in responses.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.domains.authorization.roles import Role
from src.infrastructure.database.models.user import UserStatus
from src.models.common import PartialUpdate


class UserResponse(BaseModel):
    """User as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: Role
    status: UserStatus
    branch_id: str | None = None
    avatar_url: str | None = None
    last_login: datetime | None = None
    email_verified: bool
    created_at: datetime
    updated_at: datetime


class UserCreateRequest(BaseModel):
    """Request to create a user from the administration side."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    role: Role
    status: UserStatus = UserStatus.ACTIVE
    branch_id: str | None = None


class UserUpdateRequest(PartialUpdate):
    """Partial user update. Omitted fields are left unchanged."""

    non_nullable = frozenset({"email", "first_name", "last_name", "role", "status"})

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=2, max_length=100)
    last_name: str | None = Field(default=None, min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    role: Role | None = None
    status: UserStatus | None = None
    branch_id: str | None = None
    avatar_url: str | None = None


class UserStatsResponse(BaseModel):
    """User counts of a tenant."""

    total: int
    active: int
    by_role: dict[str, int]
