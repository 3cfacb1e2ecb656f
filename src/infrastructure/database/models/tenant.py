# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant model.

A tenant is one academy organization. Its domain is the namespace used to
resolve login attempts, so it is globally unique.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, JSONType, TimestampMixin, UUIDMixin
from src.utils.datetime import is_expired, utc_now

TRIAL_PERIOD_DAYS = 14


class LicensePlan(str, Enum):
    """Subscription plans."""

    TRIAL = "trial"
    BASIC = "basic"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


def _default_license_end() -> datetime:
    return utc_now() + timedelta(days=TRIAL_PERIOD_DAYS)


class Tenant(Base, UUIDMixin, TimestampMixin):
    """Academy organization.

    Attributes:
        name: Display name.
        domain: Unique login namespace, e.g. ``demo.jiu-jitsu.com``.
        plan: Subscription plan.
        license_start: Start of the license window.
        license_end: End of the license window.
        is_active: Soft-deactivation flag.
        settings: Free-form settings map.
        contact_email: Primary contact address.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    plan: Mapped[str] = mapped_column(String(32), nullable=False, default=LicensePlan.TRIAL.value)
    license_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    license_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_default_license_end,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(50))
    address: Mapped[str | None] = mapped_column(Text)
    logo_url: Mapped[str | None] = mapped_column(Text)

    @property
    def tenant_id(self) -> str:
        """A tenant is scoped by its own id."""
        return self.id

    @property
    def is_license_valid(self) -> bool:
        """Whether the license window has not ended yet."""
        return not is_expired(self.license_end)

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, domain={self.domain})>"
