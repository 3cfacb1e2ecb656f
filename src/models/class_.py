# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.infrastructure.database.models.class_ import ClassStatus
from src.models.common import PartialUpdate


class ClassResponse(BaseModel):
    """Class as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: str | None = None
    branch_id: str
    coach_id: str
    modality: str
    start_time: datetime
    end_time: datetime
    max_capacity: int
    current_enrollment: int
    status: ClassStatus
    recurring_pattern: str | None = None
    price: Decimal | None = None
    requirements: list[str]
    created_at: datetime
    updated_at: datetime


class ClassCreateRequest(BaseModel):
    """Request to schedule a class."""

    name: str = Field(min_length=2, max_length=255)
    description: str | None = None
    branch_id: str
    coach_id: str
    modality: str = Field(min_length=1, max_length=100)
    start_time: datetime
    end_time: datetime
    max_capacity: int = Field(default=20, ge=1)
    recurring_pattern: str | None = Field(default=None, max_length=50)
    price: Decimal | None = Field(default=None, ge=0)
    requirements: list[str] = []

    @model_validator(mode="after")
    def validate_time_window(self) -> Self:
        """A class must end after it starts."""
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ClassUpdateRequest(PartialUpdate):
    """Partial class update."""

    non_nullable = frozenset(
        {
            "name",
            "branch_id",
            "coach_id",
            "modality",
            "start_time",
            "end_time",
            "max_capacity",
            "status",
            "requirements",
        }
    )

    name: str | None = Field(default=None, min_length=2, max_length=255)
    description: str | None = None
    branch_id: str | None = None
    coach_id: str | None = None
    modality: str | None = Field(default=None, max_length=100)
    start_time: datetime | None = None
    end_time: datetime | None = None
    max_capacity: int | None = Field(default=None, ge=1)
    status: ClassStatus | None = None
    recurring_pattern: str | None = Field(default=None, max_length=50)
    price: Decimal | None = Field(default=None, ge=0)
    requirements: list[str] | None = None


class ClassStatsResponse(BaseModel):
    """Class counts and enrollment totals."""

    total: int
    scheduled: int
    ongoing: int
    completed: int
    cancelled: int
    total_enrollments: int
    average_enrollment: float
