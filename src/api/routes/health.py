# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Liveness and readiness endpoints.

``/health`` answers as long as the process serves requests. ``/health/ready``
pings the relational store and, when rate-limit counters live in Redis, the
Redis server too; it answers 503 while any of them is unreachable so load
balancers stop routing to the instance.
"""

import asyncio
import logging
import time
from typing import Any, Literal

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src import __version__
from src.api.dependencies import get_app_settings
from src.core.config import Settings
from src.infrastructure.database.connection import Database
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

ComponentStatus = Literal["healthy", "unhealthy"]


class ComponentHealth(BaseModel):
    """Result of probing one backing service."""

    status: ComponentStatus
    latency_ms: float | None = Field(None, description="Check round trip in ms")
    message: str | None = None


class HealthResponse(BaseModel):
    status: ComponentStatus
    timestamp: str = Field(description="Server time, ISO 8601 UTC")
    version: str
    environment: str
    uptime_seconds: int


class ReadinessResponse(BaseModel):
    ready: bool
    checks: dict[str, Any] = Field(description="Check result per backing service")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def check_database(database: Database | None) -> ComponentHealth:
    """Ping the relational store."""
    if database is None:
        return ComponentHealth(status="unhealthy", message="Database not configured")

    start = time.perf_counter()
    if not await database.ping():
        return ComponentHealth(status="unhealthy", message="Database unreachable")
    return ComponentHealth(status="healthy", latency_ms=_elapsed_ms(start))


async def check_redis(url: str) -> ComponentHealth:
    """Ping the Redis server holding rate-limit counters."""
    start = time.perf_counter()
    client = aioredis.from_url(url)
    try:
        await client.ping()
    except (OSError, aioredis.RedisError) as e:
        logger.error("Redis health check failed: %s", e)
        return ComponentHealth(status="unhealthy", message=str(e))
    finally:
        await client.aclose()
    return ComponentHealth(status="healthy", latency_ms=_elapsed_ms(start))


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """Report that the process is up."""
    started_at: float = getattr(request.app.state, "started_at", time.time())

    return HealthResponse(
        status="healthy",
        timestamp=utc_now().isoformat(),
        version=__version__,
        environment=settings.environment,
        uptime_seconds=int(time.time() - started_at),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Check the backing services; 503 unless every check is healthy."""
    checks_by_name = {"database": check_database(getattr(request.app.state, "database", None))}
    if settings.rate_limit.enabled and settings.rate_limit.use_redis:
        checks_by_name["redis"] = check_redis(settings.redis.url)

    results = await asyncio.gather(*checks_by_name.values())
    checks = {name: result.model_dump(exclude_none=True) for name, result in zip(checks_by_name, results)}
    ready = all(result.status == "healthy" for result in results)

    if not ready:
        logger.warning("Readiness check failed: %s", checks)

    return JSONResponse(
        status_code=200 if ready else 503,
        content=ReadinessResponse(ready=ready, checks=checks).model_dump(),
    )
