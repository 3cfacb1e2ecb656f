# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

This module provides the store handle for the relational database that holds
tenants, users, branches and classes. There is no module-level connection
state: the process entry point creates a Database, calls init() at startup
and teardown() at shutdown, and hands it to whoever needs sessions. Tests
build their own isolated instances the same way.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production. Any
SQLAlchemy async URL works; the test-suite runs on aiosqlite.

Example:
    from src.infrastructure.database.connection import Database

    database = Database.from_settings(settings.database)
    await database.init()

    async with database.session() as session:
        result = await session.execute(select(Tenant))
        tenants = result.scalars().all()

    await database.teardown()
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.infrastructure.database.models import Base

if TYPE_CHECKING:
    from src.core.config.settings import DatabaseSettings

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Explicit handle on the relational store.

    Attributes:
        url: SQLAlchemy async database URL.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
    ) -> None:
        """Initialize the handle. No connection is made until init().

        Args:
            url: SQLAlchemy async database URL.
            pool_size: Connection pool size (pooled backends only).
            max_overflow: Maximum overflow connections (pooled backends only).
            echo: Log every SQL statement.
        """
        self.url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: "DatabaseSettings") -> "Database":
        """Build a handle from database settings."""
        return cls(
            url=settings.url,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            echo=settings.echo,
        )

    @property
    def is_initialized(self) -> bool:
        """Whether init() has been called and teardown() has not."""
        return self._engine is not None

    @property
    def is_sqlite(self) -> bool:
        """Whether the URL points at SQLite."""
        return make_url(self.url).get_backend_name() == "sqlite"

    async def init(self) -> None:
        """Create the engine and sessionmaker.

        Calling init() on an initialized handle does nothing.

        Raises:
            DatabaseError: If engine creation fails.
        """
        if self._engine is not None:
            return

        engine_kwargs: dict[str, Any] = {"echo": self._echo}
        if not self.is_sqlite:
            engine_kwargs.update(
                pool_size=self._pool_size,
                max_overflow=self._max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
            )

        try:
            self._engine = create_async_engine(self.url, **engine_kwargs)
        except (SQLAlchemyError, ImportError, ValueError) as e:
            raise DatabaseError("Failed to initialize database connection", e) from e

        if self.is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database initialized: backend=%s", make_url(self.url).get_backend_name())

    async def teardown(self) -> None:
        """Dispose of the engine and all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine.

        Raises:
            DatabaseError: If the handle has not been initialized.
        """
        if self._engine is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """Get the sessionmaker.

        Raises:
            DatabaseError: If the handle has not been initialized.
        """
        if self._sessionmaker is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._sessionmaker

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Get an async session.

        The session is automatically committed on success and rolled back
        on exception.

        Yields:
            AsyncSession for database operations.

        Raises:
            DatabaseError: If the handle has not been initialized or
                if a database operation fails.

        Example:
            async with database.session() as session:
                result = await session.execute(select(Tenant))
                tenants = result.scalars().all()
        """
        sessionmaker = self.sessionmaker

        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_schema(self) -> None:
        """Drop all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database ping failed: %s", e)
            return False
        except OSError as e:
            logger.warning("Database unreachable: %s", e)
            return False
