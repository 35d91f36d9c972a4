"""
NoteLens Backend — Request Logging Middleware
===============================================

What:  One access log line per HTTP request, with status and duration.
How:   Level follows the status class: 5xx → ERROR, 4xx → WARNING,
       otherwise INFO. Structured fields go into `extra` for aggregators.

Not logged: request bodies (note text, images), Authorization headers.

Typical durations:
    GET /health:            1-5ms
    GET /api/notes:         10-50ms
    POST /api/vision/*:     1-6s (upload + remote function)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notelens.middleware.request_id import request_id_var

logger = logging.getLogger("notelens.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        # Probes hit this every few seconds
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
