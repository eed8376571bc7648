"""Health endpoints for the tally API.

tally has one dependency worth probing, the counter store, so health is a
single storage ping:

    ``GET /health``        ping storage; 200 healthy, 503 unhealthy
    ``GET /health/ready``  same check, for readiness probes
    ``GET /health/live``   process is up; never touches storage

Usage::

    router = create_health_router("tally", "0.1.0", storage_check=ping_store)
    app.include_router(router, prefix="/api")
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

_START_TIME = time.monotonic()

HEALTHY_MESSAGE = "Server is up and running."
UNHEALTHY_MESSAGE = "Storage is unavailable."

HealthStatus = Literal["healthy", "unhealthy"]


class CheckResult(BaseModel):
    """Outcome of the storage ping."""

    status: HealthStatus
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus = "healthy"
    message: str = HEALTHY_MESSAGE
    service: str = ""
    version: str = ""
    uptime_s: float = 0.0
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    status: str = "alive"


async def _ping(storage_check: Callable[[], Awaitable[None]], timeout_s: float) -> CheckResult:
    start = time.monotonic()
    try:
        await asyncio.wait_for(storage_check(), timeout=timeout_s)
    except TimeoutError:
        return CheckResult(status="unhealthy", error="timeout")
    except Exception as exc:  # noqa: BLE001
        return CheckResult(
            status="unhealthy",
            latency_ms=round((time.monotonic() - start) * 1000, 2),
            error=type(exc).__name__,
        )
    return CheckResult(status="healthy", latency_ms=round((time.monotonic() - start) * 1000, 2))


def create_health_router(
    service_name: str,
    version: str,
    storage_check: Callable[[], Awaitable[None]],
    *,
    timeout_s: float = 5.0,
) -> APIRouter:
    """Build the ``/health`` router around *storage_check*.

    *storage_check* is an async callable that raises when the counter store
    cannot be reached. A check that runs past *timeout_s* counts as failed.
    """
    router = APIRouter(tags=["health"])

    async def _report() -> JSONResponse:
        result = await _ping(storage_check, timeout_s)
        healthy = result.status == "healthy"
        body = HealthResponse(
            status=result.status,
            message=HEALTHY_MESSAGE if healthy else UNHEALTHY_MESSAGE,
            service=service_name,
            version=version,
            uptime_s=round(time.monotonic() - _START_TIME, 1),
            checks={"storage": result},
        )
        return JSONResponse(content=body.model_dump(), status_code=200 if healthy else 503)

    @router.get("/health", response_model=HealthResponse)
    async def health() -> JSONResponse:
        return await _report()

    @router.get("/health/ready", response_model=HealthResponse)
    async def readiness() -> JSONResponse:
        """Readiness probe: 503 while storage is down."""
        return await _report()

    @router.get("/health/live", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        return LivenessResponse()

    return router
