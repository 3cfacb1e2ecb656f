# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Branch API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.models.common import PartialUpdate


class BranchResponse(BaseModel):
    """Branch as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    address: str
    city: str
    state: str
    country: str
    postal_code: str
    phone: str | None = None
    email: str | None = None
    manager_id: str | None = None
    is_active: bool
    capacity: int
    facilities: list[str]
    coordinates: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class BranchCreateRequest(BaseModel):
    """Request to open a branch."""

    name: str = Field(min_length=2, max_length=255)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    phone: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    manager_id: str | None = None
    capacity: int = Field(default=50, ge=1)
    facilities: list[str] = []
    coordinates: dict[str, Any] | None = None


class BranchUpdateRequest(PartialUpdate):
    """Partial branch update."""

    non_nullable = frozenset(
        {"name", "address", "city", "state", "country", "postal_code", "is_active", "capacity", "facilities"}
    )

    name: str | None = Field(default=None, min_length=2, max_length=255)
    address: str | None = None
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    phone: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    manager_id: str | None = None
    is_active: bool | None = None
    capacity: int | None = Field(default=None, ge=1)
    facilities: list[str] | None = None
    coordinates: dict[str, Any] | None = None
