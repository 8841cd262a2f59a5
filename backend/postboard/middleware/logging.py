"""
Postboard Backend - Request Logging Middleware
==============================================

What:  One access-log line per request on the `postboard.access` logger.
How:   Measures the time spent below this middleware and logs method, path,
       status, duration, request id and client address.

Levels:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.

Privacy:
    Request bodies (passwords, uploaded images) and headers (session cookie)
    are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from postboard.middleware.request_id import request_id_var

logger = logging.getLogger("postboard.access")

# Probed every few seconds by orchestrators; not worth a log line each.
SKIPPED_PATHS = {"/health"}


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = client_address(request)
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
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
