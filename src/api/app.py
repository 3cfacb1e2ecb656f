# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI application factory.

``create_app`` wires one application instance: its settings, store handle,
token codec, password hasher and notifier are kept on ``app.state`` and read
by the dependencies in ``src.api.dependencies``. The lifespan opens the store
at startup and closes it at shutdown. Tests build isolated applications by
passing their own settings, Database and notifier.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from src import __version__
from src.api.errors import register_exception_handlers
from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.rate_limit import build_limiter
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import Settings, get_settings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.notifier import AuthNotifier, LoggingNotifier
from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.connection import Database, DatabaseError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store and create missing tables; close it on shutdown.

    A store that cannot be reached at startup does not stop the process.
    Readiness reports it and routes needing the store answer 503.
    """
    settings: Settings = app.state.settings
    database: Database = app.state.database
    logger.info("Starting academy API: environment=%s", settings.environment)

    try:
        await database.init()
        await database.create_schema()
    except (DatabaseError, SQLAlchemyError, OSError) as e:
        logger.warning("Database unavailable at startup: %s", e)

    yield

    await database.teardown()
    logger.info("Academy API stopped")


def _install_state(
    app: FastAPI,
    settings: Settings,
    database: Database | None,
    notifier: AuthNotifier | None,
) -> JWTManager:
    jwt_manager = JWTManager(settings.jwt)

    app.state.settings = settings
    app.state.started_at = time.time()
    app.state.database = database or Database.from_settings(settings.database)
    app.state.jwt_manager = jwt_manager
    app.state.password_hasher = PasswordHasher(rounds=settings.auth.bcrypt_rounds)
    app.state.notifier = notifier or LoggingNotifier()

    app.state.limiter = build_limiter(settings)

    return jwt_manager


def _install_middleware(app: FastAPI, settings: Settings, jwt_manager: JWTManager) -> None:
    # Last added runs first: CORS, request context, auth.
    app.add_middleware(AuthMiddleware, jwt_manager=jwt_manager, api_prefix=settings.api.prefix)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    notifier: AuthNotifier | None = None,
) -> FastAPI:
    """Create the academy API application.

    Args:
        settings: Application settings. Defaults to the cached settings.
        database: Store handle. Built from the database settings when omitted.
        notifier: Delivers reset and verification tokens. Defaults to
            LoggingNotifier.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    interactive_docs = settings.debug or settings.is_development

    app = FastAPI(
        title="Academy API",
        description="Multi-tenant jiu-jitsu academy backend",
        version=__version__,
        docs_url="/docs" if interactive_docs else None,
        redoc_url="/redoc" if interactive_docs else None,
        openapi_url="/openapi.json" if interactive_docs else None,
        lifespan=lifespan,
        # A 307 to the slashed path would drop the Authorization header.
        redirect_slashes=False,
    )

    jwt_manager = _install_state(app, settings, database, notifier)
    register_exception_handlers(app)
    _install_middleware(app, settings, jwt_manager)

    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router, prefix=settings.api.prefix)

    return app
