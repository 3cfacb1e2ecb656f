# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for the academy service.

Two kinds of loggers feed the same output:
- ``get_logger(__name__)`` returns a structlog logger for key/value events
  (the auth service uses these for security-relevant events);
- ``logging.getLogger(__name__)`` stays available for %-style messages in
  routers, repositories and infrastructure code.

Both go through one stdlib handler whose formatter runs the structlog
processor chain, so request context bound with ``bind_context`` (request id,
method, path) appears on every line. Credentials are masked in every
record below DEBUG.

Example:
    >>> from src.utils.logging import setup_logging, get_logger
    >>> from src.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> logger.info("login_succeeded", user_id="123", tenant_id="t-1")
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, MutableMapping

import structlog
from structlog.types import EventDict, Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

MASK = "●●●●"

# Event keys whose values are credentials.
SENSITIVE_KEYS = frozenset({
    "password",
    "current_password",
    "new_password",
    "password_hash",
    "token",
    "access_token",
    "refresh_token",
    "reset_token",
    "verification_token",
    "authorization",
    "secret",
})

# Third-party loggers kept at WARNING.
QUIET_LOGGERS = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "aiosqlite",
    "asyncio",
    "slowapi",
)


def mask_sensitive(_: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace credential values unless the record is a DEBUG record."""
    if method_name == "debug":
        return event_dict
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        mask_sensitive,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(settings: "Settings") -> Processor:
    if settings.is_development or settings.debug:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and route stdlib logging through it.

    Console rendering in development or debug mode, JSON lines otherwise.

    Args:
        settings: Application settings providing log_level, debug and
            environment.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # SQL echo is controlled by DB_ECHO, not by the log level.
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind request-scoped values to every log call in this context.

    Example:
        >>> bind_context(request_id="abc-123", tenant_id="tenant-1")
        >>> logger.info("branch_updated")  # carries request_id and tenant_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all bound context. Called when a request finishes."""
    structlog.contextvars.clear_contextvars()


def bound_context() -> MutableMapping[str, Any]:
    """Return a copy of the values currently bound to the context."""
    return dict(structlog.contextvars.get_contextvars())
