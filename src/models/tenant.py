# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from src.infrastructure.database.models.tenant import LicensePlan


class TenantResponse(BaseModel):
    """Tenant as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    domain: str
    plan: LicensePlan
    license_start: datetime
    license_end: datetime
    is_active: bool
    settings: dict[str, Any]
    contact_email: str
    contact_phone: str | None = None
    address: str | None = None
    logo_url: str | None = None
    created_at: datetime
    updated_at: datetime


class TenantSettingsUpdateRequest(BaseModel):
    """Replacement settings map."""

    settings: dict[str, Any]


class TenantStatsResponse(BaseModel):
    """Totals of a tenant's records."""

    total_users: int
    active_users: int
    total_branches: int
    total_classes: int
