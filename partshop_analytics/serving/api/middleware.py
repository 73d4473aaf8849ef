"""
API Middleware

One structured access-log line per request, with a request id bound into
the structlog context for every log line emitted while handling it.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Health check traffic is logged at debug level
QUIET_PATHS = frozenset({"/api/health/live", "/api/health/ready", "/api/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging with timing and request correlation"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000

            if response.status_code >= 500:
                log = logger.warning
            elif request.url.path in QUIET_PATHS:
                log = logger.debug
            else:
                log = logger.info

            log(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                query=request.url.query or None,
                status_code=response.status_code,
                duration_ms=round(elapsed_ms, 2),
                client=request.client.host if request.client else None,
            )

        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
