# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Generic tenant-scoped repository.

Every query a repository builds starts from ``_scoped(tenant_id)``, which
conjoins the tenant predicate. Operations that take an id also take the
tenant id, and a row of another tenant is indistinguishable from a row that
does not exist: lookups return None, updates return None, deletes return
False.

Example:
    repo = UserRepository(session)
    page = await repo.find_all(
        tenant_id,
        PageParams(page=2, limit=5),
        ListFilters(search="silva", status="active"),
    )
    assert page.total == await repo.count(tenant_id, ListFilters(search="silva", status="active"))
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, Literal, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.base import Base
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class RepositoryError(Exception):
    """Base exception for repository operations."""

    pass


class DuplicateRecordError(RepositoryError):
    """Raised when a write violates a unique constraint."""

    pass


class InvalidReferenceError(RepositoryError):
    """Raised when a write references a row that does not exist."""

    pass


class ConstraintViolationError(RepositoryError):
    """Raised when a write breaks a NOT NULL or CHECK constraint."""

    pass


class InvalidQueryError(RepositoryError):
    """Raised for unknown fields, immutable fields or a missing tenant id."""

    pass


@dataclass
class PageParams:
    """Pagination and ordering of a list query.

    Attributes:
        page: 1-indexed page number.
        limit: Page size, 1 to 100.
        sort_by: Column to order by.
        sort_order: ``asc`` or ``desc``.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    def __post_init__(self) -> None:
        if self.page < 1:
            raise InvalidQueryError("page must be >= 1")
        if not 1 <= self.limit <= MAX_LIMIT:
            raise InvalidQueryError(f"limit must be between 1 and {MAX_LIMIT}")
        if self.sort_order not in ("asc", "desc"):
            raise InvalidQueryError("sort_order must be 'asc' or 'desc'")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class ListFilters:
    """Filters shared by find_all and count.

    Attributes:
        search: Case-insensitive substring matched against the search fields.
        status: Status value, see the repository's status field.
        equals: Exact-match filters on the repository's filterable fields.
    """

    search: str | None = None
    status: str | None = None
    equals: dict[str, Any] = field(default_factory=dict)


@dataclass
class Page(Generic[ModelT]):
    """One page of results plus the filtered total."""

    items: list[ModelT]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def escape_like(value: str) -> str:
    """Escape LIKE wildcards in user input."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TenantScopedRepository(Generic[ModelT]):
    """CRUD repository where every operation is bound to a tenant.

    Subclasses set ``model`` and describe which columns can be searched,
    sorted and filtered.

    Attributes:
        model: ORM model class.
        tenant_key: Column holding the owning tenant id.
        search_fields: Columns matched by ``ListFilters.search``.
        sortable_fields: Columns accepted as ``PageParams.sort_by``.
        filterable_fields: Columns accepted in ``ListFilters.equals``.
        status_field: Column matched by ``ListFilters.status``.
    """

    model: ClassVar[type[Base]]
    tenant_key: ClassVar[str] = "tenant_id"
    search_fields: ClassVar[tuple[str, ...]] = ()
    sortable_fields: ClassVar[tuple[str, ...]] = ("created_at", "updated_at")
    filterable_fields: ClassVar[tuple[str, ...]] = ()
    status_field: ClassVar[str | None] = "status"
    immutable_fields: ClassVar[frozenset[str]] = frozenset(
        {"id", "tenant_id", "created_at", "updated_at"}
    )

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async database session.
        """
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    # =========================================================================
    # Generic Operations
    # =========================================================================

    async def find_all(
        self,
        tenant_id: str,
        pagination: PageParams | None = None,
        filters: ListFilters | None = None,
    ) -> Page[ModelT]:
        """List rows of a tenant, one page at a time.

        Args:
            tenant_id: Owning tenant.
            pagination: Page, size and ordering. Defaults to page 1 of 10,
                newest first.
            filters: Search, status and exact-match filters.

        Returns:
            Page whose total counts every row matching the filters.

        Raises:
            InvalidQueryError: On an unknown sort or filter field.
        """
        pagination = pagination or PageParams()
        stmt = self._apply_filters(self._scoped(tenant_id), filters)

        total = await self._count_statement(stmt)

        stmt = (
            stmt.order_by(self._order_by(pagination), self._column("id"))
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        result = await self._session.execute(stmt)

        return Page(
            items=list(result.scalars().all()),
            total=total,
            page=pagination.page,
            limit=pagination.limit,
        )

    async def find_by_id(self, id: str, tenant_id: str) -> ModelT | None:
        """Get a row by id within a tenant.

        Returns:
            The row, or None if it does not exist or belongs to another tenant.
        """
        stmt = self._scoped(tenant_id).where(self._column("id") == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: dict[str, Any]) -> ModelT:
        """Insert a row. The tenant id is taken from the payload.

        Args:
            data: Column values, including the tenant key.

        Returns:
            The created row with generated id and timestamps.

        Raises:
            InvalidQueryError: If the tenant key is missing or a column is unknown.
            DuplicateRecordError: If a unique constraint is violated.
            InvalidReferenceError: If a foreign key does not resolve.
        """
        if not data.get(self.tenant_key):
            raise InvalidQueryError(f"{self.tenant_key} is required to create a row")
        self._check_columns(data.keys())

        instance = self.model(**data)
        self._session.add(instance)
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            raise self._integrity_error(e) from e

        return instance

    async def update(self, id: str, tenant_id: str, patch: dict[str, Any]) -> ModelT | None:
        """Apply a partial update in a single statement.

        Args:
            id: Row id.
            tenant_id: Owning tenant.
            patch: Columns to change.

        Returns:
            The updated row, or None if no row matches id and tenant.

        Raises:
            InvalidQueryError: If the patch names an immutable or unknown column.
            DuplicateRecordError: If a unique constraint is violated.
        """
        if not patch:
            return await self.find_by_id(id, tenant_id)

        immutable = (self.immutable_fields | {self.tenant_key}) & set(patch)
        if immutable:
            raise InvalidQueryError(f"Cannot update immutable fields: {sorted(immutable)}")
        self._check_columns(patch.keys())

        return await self._update_where(
            tenant_id,
            self._column("id") == id,
            values=patch,
        )

    async def delete(self, id: str, tenant_id: str) -> bool:
        """Delete a row within a tenant.

        Returns:
            True if a row was deleted, False if none matched.
        """
        stmt = delete(self.model).where(
            self._tenant_column() == self._require_tenant(tenant_id),
            self._column("id") == id,
        )
        result = await self._session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def exists(self, id: str, tenant_id: str) -> bool:
        """Check whether a row exists within a tenant."""
        stmt = (
            select(self._column("id"))
            .where(
                self._tenant_column() == self._require_tenant(tenant_id),
                self._column("id") == id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def count(self, tenant_id: str, filters: ListFilters | None = None) -> int:
        """Count rows of a tenant under the same filters as find_all."""
        stmt = self._apply_filters(self._scoped(tenant_id), filters)
        return await self._count_statement(stmt)

    # =========================================================================
    # Helpers for Specializations
    # =========================================================================

    def _scoped(self, tenant_id: str) -> Select:
        """Select statement restricted to one tenant."""
        return select(self.model).where(
            self._tenant_column() == self._require_tenant(tenant_id)
        )

    async def _find_where(
        self,
        tenant_id: str,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = self._scoped(tenant_id).where(*conditions)
        stmt = stmt.order_by(*order_by) if order_by else stmt.order_by(
            self._column("created_at").desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def _find_one_where(
        self,
        tenant_id: str,
        *conditions: ColumnElement[bool],
    ) -> ModelT | None:
        stmt = self._scoped(tenant_id).where(*conditions).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _update_where(
        self,
        tenant_id: str,
        *conditions: ColumnElement[bool],
        values: dict[str, Any],
    ) -> ModelT | None:
        """Run one UPDATE ... WHERE tenant AND conditions RETURNING row."""
        values = {"updated_at": utc_now(), **values}
        stmt = (
            update(self.model)
            .where(self._tenant_column() == self._require_tenant(tenant_id), *conditions)
            .values(**values)
            .returning(self.model)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as e:
            await self._session.rollback()
            raise self._integrity_error(e) from e
        return result.scalars().first()

    async def _count_statement(self, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        result = await self._session.execute(count_stmt)
        return int(result.scalar_one())

    def _apply_filters(self, stmt: Select, filters: ListFilters | None) -> Select:
        if filters is None:
            return stmt

        if filters.search and filters.search.strip() and self.search_fields:
            pattern = f"%{escape_like(filters.search.strip())}%"
            stmt = stmt.where(
                or_(
                    *(
                        self._column(name).ilike(pattern, escape="\\")
                        for name in self.search_fields
                    )
                )
            )

        if filters.status and self.status_field:
            stmt = stmt.where(self._status_condition(filters.status))

        for name, value in filters.equals.items():
            if value is None:
                continue
            if name not in self.filterable_fields:
                raise InvalidQueryError(f"Cannot filter by '{name}'")
            stmt = stmt.where(self._column(name) == value)

        return stmt

    def _status_condition(self, status: str) -> ColumnElement[bool]:
        return self._column(self.status_field) == status

    def _order_by(self, pagination: PageParams) -> Any:
        if pagination.sort_by not in self.sortable_fields:
            raise InvalidQueryError(f"Cannot sort by '{pagination.sort_by}'")
        column = self._column(pagination.sort_by)
        return column.asc() if pagination.sort_order == "asc" else column.desc()

    def _column(self, name: str) -> Any:
        return getattr(self.model, name)

    def _tenant_column(self) -> Any:
        return self._column(self.tenant_key)

    def _check_columns(self, names: Any) -> None:
        known = set(self.model.__table__.columns.keys())
        unknown = set(names) - known
        if unknown:
            raise InvalidQueryError(f"Unknown fields for {self.model.__tablename__}: {sorted(unknown)}")

    @staticmethod
    def _require_tenant(tenant_id: str) -> str:
        if not tenant_id:
            raise InvalidQueryError("tenant_id is required")
        return tenant_id

    @staticmethod
    def _integrity_error(error: IntegrityError) -> RepositoryError:
        detail = str(error.orig).lower()
        if "unique" in detail or "duplicate" in detail:
            return DuplicateRecordError("Record already exists")
        if "foreign key" in detail:
            return InvalidReferenceError("Referenced record does not exist")
        logger.warning("Integrity error: %s", error.orig)
        return ConstraintViolationError("Invalid field values")
