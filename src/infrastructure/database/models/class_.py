# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class model: a scheduled training session at a branch."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ClassStatus(str, Enum):
    """Lifecycle of a class."""

    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Class(Base, UUIDMixin, TimestampMixin):
    """Scheduled class.

    Attributes:
        branch_id: Branch where the class takes place.
        coach_id: Coach running the class.
        modality: Discipline, e.g. ``gi`` or ``no-gi``.
        max_capacity: Seats available.
        current_enrollment: Seats taken, between 0 and max_capacity.
    """

    __tablename__ = "classes"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    branch_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("branches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    coach_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    modality: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    current_enrollment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ClassStatus.SCHEDULED.value,
    )
    recurring_pattern: Mapped[str | None] = mapped_column(String(50))
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    requirements: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    @property
    def has_capacity(self) -> bool:
        """Whether at least one seat is free."""
        return self.current_enrollment < self.max_capacity

    def __repr__(self) -> str:
        return f"<Class(id={self.id}, tenant_id={self.tenant_id}, name={self.name})>"
