# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides middleware for request processing:
- RequestContextMiddleware: Request id binding for logs.
- AuthMiddleware: JWT authentication.
- limit_auth_requests: Per-client limit on the public auth endpoints.

Exports:
    RequestContextMiddleware: Request context middleware.
    AuthMiddleware: JWT authentication middleware.
    CurrentUser: Authenticated caller identity.
    build_limiter: Per-application slowapi limiter factory.
    limit_auth_requests: Auth rate limit dependency.
"""

from src.api.middleware.auth import AuthMiddleware, CurrentUser
from src.api.middleware.rate_limit import build_limiter, limit_auth_requests
from src.api.middleware.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
    "AuthMiddleware",
    "CurrentUser",
    "build_limiter",
    "limit_auth_requests",
]
