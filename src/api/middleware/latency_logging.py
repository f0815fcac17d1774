"""Access log with per-request latency."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000

# Polled by the load balancer every few seconds
QUIET_PATHS = frozenset({"/health", "/health/ready"})


def _level_for(path: str, status_code: int, latency_ms: float) -> tuple[int, str]:
    if path in QUIET_PATHS:
        return logging.DEBUG, ""
    if status_code >= 500 or latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
        prefix = "VERY SLOW REQUEST: " if latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS else ""
        return logging.ERROR, prefix
    if latency_ms > SLOW_REQUEST_THRESHOLD_MS:
        return logging.WARNING, "SLOW REQUEST: "
    if status_code >= 400:
        return logging.WARNING, ""
    return logging.INFO, ""


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log one line per request with method, path, status and latency.

    A request that raised past this middleware is logged as a 500.
    """
    start_time = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        path = request.url.path
        level, prefix = _level_for(path, status_code, latency_ms)
        logger.log(
            level,
            "%s%s %s - %d - %.2fms",
            prefix,
            request.method,
            path,
            status_code,
            latency_ms,
            extra={
                "method": request.method,
                "path": path,
                "status_code": status_code,
                "latency_ms": round(latency_ms, 2),
            },
        )
