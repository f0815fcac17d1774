"""Health check endpoints for monitoring and deployment verification."""

import time
from typing import Any, Callable

from fastapi import APIRouter, Request, Response, status

from src.core.database import check_database_connection
from src.core.redis import check_cache_connection
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


def _timed_check(name: str, check: Callable[[], dict[str, Any]]) -> CheckResult:
    start_time = time.perf_counter()
    result = check()
    latency_ms = (time.perf_counter() - start_time) * 1000
    return CheckResult(
        name=name,
        healthy=result["healthy"],
        latency_ms=round(latency_ms, 2),
        error=result.get("error"),
    )


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check() -> HealthResponse:
    """Always 200 while the process is serving; touches no backing service."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database or cache unavailable"}},
    summary="Readiness check",
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """Probe PostgreSQL and Redis.

    Both back the fulfilment path: the database for every booking and
    delivery write, Redis for the dashboard views. Either one failing
    takes the instance out of rotation with a 503.
    """
    state = request.app.state
    checks = [
        _timed_check("database", lambda: check_database_connection(state.engine)),
        _timed_check("cache", lambda: check_cache_connection(state.redis)),
    ]

    if all(check.healthy for check in checks):
        return ReadinessResponse(status=HealthStatus.HEALTHY, checks=checks)

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status=HealthStatus.UNHEALTHY, checks=checks)
