# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request limits for the public auth endpoints.

Login, registration, password-reset requests and verification resends are
the endpoints an attacker can call without a token, so each of them is
limited per client address. Each application owns its limiter, built by
``build_limiter`` from the application's settings and kept on
``app.state.limiter``. Counters live in process memory unless
RATE_LIMIT_USE_REDIS is set, in which case every worker shares them through
Redis.

Example:
    @router.post("/login", dependencies=[Depends(limit_auth_requests)])
    async def login(...):
        ...
"""

import logging
import math
import time

from fastapi import Request, status
from limits import RateLimitItem, RateLimitItemPerMinute
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.errors import APIError
from src.core.config import Settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "academy-rl"

RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."


def client_address(request: Request) -> str:
    """Key requests by client address alone."""
    return f"ip:{get_remote_address(request)}"


def auth_rate_limit(settings: Settings) -> RateLimitItem:
    """Per-minute limit of the public auth endpoints."""
    return RateLimitItemPerMinute(settings.rate_limit.auth_requests_per_minute)


def storage_uri(settings: Settings) -> str:
    if settings.rate_limit.use_redis:
        return settings.redis.url
    return "memory://"


def build_limiter(settings: Settings) -> Limiter:
    """Create a limiter for the given settings."""
    uri = storage_uri(settings)
    logger.debug("Rate limit storage: %s", uri.split(":", 1)[0])
    return Limiter(
        key_func=client_address,
        storage_uri=uri,
        key_prefix=KEY_PREFIX,
        enabled=settings.rate_limit.enabled,
    )


async def limit_auth_requests(request: Request) -> None:
    """Count the request against the application's auth limit.

    Raises:
        APIError: 429 once the client has used up the current window.
    """
    limiter: Limiter = request.app.state.limiter
    if not limiter.enabled:
        return

    item = auth_rate_limit(request.app.state.settings)
    identifiers = (KEY_PREFIX, request.url.path, client_address(request))
    if limiter.limiter.hit(item, *identifiers):
        return

    reset_at = limiter.limiter.get_window_stats(item, *identifiers).reset_time
    retry_after = max(1, math.ceil(reset_at - time.time()))
    logger.warning("Rate limit exceeded: %s for %s", item, request.url.path)
    raise APIError(
        status.HTTP_429_TOO_MANY_REQUESTS,
        RATE_LIMITED_MESSAGE,
        "rate_limited",
        headers={"Retry-After": str(retry_after)},
    )
