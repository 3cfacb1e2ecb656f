# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared API schemas: the response envelope and pagination metadata."""

import math
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Schema whose JSON field names are camelCase.

    Python attribute names stay snake_case and are accepted on input too.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartialUpdate(BaseModel):
    """Body of an update where omitted fields stay unchanged.

    Fields listed in ``non_nullable`` back NOT NULL columns: they may be
    omitted but not sent as an explicit null.
    """

    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = sorted(name for name in cls.non_nullable if name in data and data[name] is None)
            if nulls:
                raise ValueError(f"{', '.join(nulls)} cannot be null")
        return data


class PaginationMeta(CamelModel):
    """Pagination block of a list response."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def from_total(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        )


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope.

    Attributes:
        success: Always True.
        data: Payload.
        message: Optional human-readable note.
        pagination: Present on list responses.
    """

    success: bool = True
    data: T | None = None
    message: str | None = None
    pagination: PaginationMeta | None = None


class ErrorResponse(BaseModel):
    """Error envelope."""

    success: bool = False
    error: str
    code: str = Field(description="Machine-stable error code")


class MessageResponse(BaseModel):
    """Envelope carrying only a message."""

    success: bool = True
    message: str
