"""
Warden API - Rate Limiting Middleware & Route Dependency
==========================================================

What:  Applies RateLimiter instances to HTTP traffic.
How:   Two entry points share the same fixed-window limiter core
       (app/services/rate_limiter.py):
         - RateLimitMiddleware runs the "standard" limiter on every request
         - RateLimit("<name>") is a route dependency that runs a named
           limiter (the "strict" one on registration and login)
Who:   Registered by create_app(); limiters live on app.state.rate_limiters.

Headers:
    Admitted:  X-RateLimit-Limit, X-RateLimit-Remaining, X-RateLimit-Reset
    Rejected:  the same plus Retry-After, with HTTP 429
    When both a route limiter and the global limiter ran, the route
    limiter's headers win.

Excluded paths:
    /health, /docs, /redoc, /openapi.json are never rate-limited.
"""

import logging
from typing import Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from app.config import Settings
from app.exceptions import RateLimitExceededError
from app.services.rate_limiter import RateLimiter, RateLimitStore

logger = logging.getLogger(__name__)

STANDARD = "standard"
STRICT = "strict"


def build_rate_limiters(settings: Settings, store: RateLimitStore) -> Dict[str, RateLimiter]:
    """The two limiter instances, isolated from each other by key prefix."""
    return {
        STANDARD: RateLimiter(
            store,
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max,
            key_prefix=STANDARD,
            message="Too many requests, please slow down.",
        ),
        STRICT: RateLimiter(
            store,
            window_ms=settings.strict_rate_limit_window_ms,
            max_requests=settings.strict_rate_limit_max,
            key_prefix=STRICT,
            message="Too many attempts, please try again after 15 minutes.",
        ),
    }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global limiter applied before any routing or authentication."""

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limiter: RateLimiter, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = limiter

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        decision = await self.limiter.check(request)
        if not decision.allowed:
            # Exceptions raised here would bypass the app's exception
            # handlers, so the 429 envelope is built directly
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": self.limiter.message},
                headers=decision.headers(),
            )

        response = await call_next(request)
        for name, value in decision.headers().items():
            response.headers.setdefault(name, value)
        return response


class RateLimit:
    """
    Route dependency running the limiter registered under `name`.

    Usage:
        @router.post("/login", dependencies=[Depends(RateLimit("strict"))])
    """

    def __init__(self, name: str):
        self.name = name

    async def __call__(self, request: Request, response: Response) -> None:
        limiter: RateLimiter = request.app.state.rate_limiters[self.name]
        decision = await limiter.check(request)
        if not decision.allowed:
            raise RateLimitExceededError(
                message=limiter.message,
                retry_after=decision.retry_after or 0,
                headers=decision.headers(),
            )
        for name, value in decision.headers().items():
            response.headers[name] = value


strict_rate_limit = RateLimit(STRICT)
