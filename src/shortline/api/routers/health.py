"""Health check endpoints for shortline.

- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks database and cache connectivity)

The service keeps working without Redis (every read falls back to the
relational store), so an unreachable cache makes the service degraded
rather than unready.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from shortline.persistence.db import health_check as db_health_check

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def _check(
    name: str, probe: Callable[[], Awaitable[bool]], failed: HealthStatus
) -> ComponentHealth:
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(probe(), timeout=CHECK_TIMEOUT)
        message = None if healthy else f"{name} check failed"
    except asyncio.TimeoutError:
        healthy, message = False, f"{name} check timed out"
    except Exception as e:
        healthy, message = False, str(e)
    latency = (time.monotonic() - start) * 1000
    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else failed,
        latency_ms=latency,
        message=message,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request) -> JSONResponse:
    """Readiness probe.

    Returns 503 only when the relational store is unreachable.
    """
    services = request.app.state.services
    session_factory = getattr(request.app.state, "session_factory", None)

    db_result, redis_result = await asyncio.gather(
        _check("database", lambda: db_health_check(session_factory), HealthStatus.UNHEALTHY),
        _check("redis", services.cache.health_check, HealthStatus.DEGRADED),
    )
    components = [db_result, redis_result]

    if all(c.status == HealthStatus.HEALTHY for c in components):
        overall_status = HealthStatus.HEALTHY
    elif any(c.status == HealthStatus.UNHEALTHY for c in components):
        overall_status = HealthStatus.UNHEALTHY
    else:
        overall_status = HealthStatus.DEGRADED

    return JSONResponse(
        content={
            "status": overall_status.value,
            "components": [c.to_dict() for c in components],
        },
        status_code=503 if overall_status == HealthStatus.UNHEALTHY else 200,
    )
