"""
Warden API - Request Logging Middleware
=========================================

What:  One access-log line per HTTP request.
How:   Measures the time around call_next and logs method, path, status,
       duration, client IP and user agent. The level follows the status
       class: 5xx ERROR, 4xx WARNING, everything else INFO.

Logged: method, path, status, duration, IP, user agent, request ID.
Never logged: request bodies, Authorization headers, tokens.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("warden.access")


def client_ip(request: Request) -> str:
    """
    Best-effort client address for logs.

    CF-Connecting-IP, then the first X-Forwarded-For entry, then X-Real-IP,
    then the socket peer.
    """
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or "unknown"
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured information about each HTTP request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        # Health checks are polled constantly
        if path == "/health":
            return await call_next(request)

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
        ip = client_ip(request)
        user_agent = request.headers.get("user-agent", "-")
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s (%s)",
            method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            user_agent,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
                "user_agent": user_agent,
            },
        )

        return response
