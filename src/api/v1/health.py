"""Health check endpoints for AidLedger API v1.

Provides liveness and readiness probes.  The readiness check verifies
that the lifecycle services were wired onto ``app.state`` at startup.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_REQUIRED_SERVICES: tuple[str, ...] = (
    "identity",
    "verification",
    "catalog",
    "applications",
    "review",
    "payments",
    "audit_log",
)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]
    audit_events: int = 0


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.  Does *not* check the wired services.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse | ORJSONResponse:
    """Readiness probe: 200 once every lifecycle service is available, 503 otherwise."""
    checks = {
        name: "ok" if getattr(request.app.state, name, None) is not None else "missing"
        for name in _REQUIRED_SERVICES
    }
    all_ok = all(v == "ok" for v in checks.values())

    audit_log = getattr(request.app.state, "audit_log", None)
    result = ReadinessResponse(
        status="ready" if all_ok else "degraded",
        checks=checks,
        audit_events=audit_log.size if audit_log is not None else 0,
    )

    if not all_ok:
        logger.warning("health.readiness_degraded", checks=checks)
        return ORJSONResponse(status_code=503, content=result.model_dump())

    return result
