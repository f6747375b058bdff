"""
Storefront Backend — Request Logging Middleware
=================================================

What:  One access-log line per API request:
           PUT /api/v1/products/gallery-image/<id> 200 41.3ms 182340B [a1b2c3d4] from 10.0.0.7
How:   Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.

The declared request size is logged so large multipart uploads stand out;
bodies and file contents are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from storefront.middleware.request_id import request_id_var

logger = logging.getLogger("storefront.access")

# Probes and served images would drown the useful lines
QUIET_PREFIXES = ("/health", "/public/")


def status_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log for everything except health probes and static files."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path.startswith(QUIET_PREFIXES):
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        length = request.headers.get("content-length", "")
        entry = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "request_bytes": int(length) if length.isdigit() else 0,
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            status_level(entry["status"]),
            "%s %s %d %.1fms %dB [%s] from %s",
            entry["method"],
            entry["path"],
            entry["status"],
            elapsed_ms,
            entry["request_bytes"],
            entry["request_id"],
            entry["client_ip"],
            extra=entry,
        )
        return response
