"""
Warden API - Secure Headers Middleware
========================================

What:  Adds browser hardening headers to every response.
How:   Fixed header set; Content-Security-Policy only in production, where
       the API does not serve the interactive docs' inline assets.
"""

from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

BASE_HEADERS: Dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

PRODUCTION_CSP = (
    "default-src 'self'; "
    "script-src 'self'; "
    "style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: https:"
)


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, production: bool = False, **kwargs):
        super().__init__(app, **kwargs)
        self.headers = dict(BASE_HEADERS)
        if production:
            self.headers["Content-Security-Policy"] = PRODUCTION_CSP

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response
