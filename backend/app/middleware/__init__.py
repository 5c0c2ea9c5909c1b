"""
Warden API - Middleware Package
=================================

What:  Cross-cutting concerns applied around the route handlers.

Middleware Chain (outermost first):
    Request → [CORS] → [Secure Headers] → [Request ID] → [Logging]
            → [Rate Limit: standard] → [GZip] → Router

    Rate limiting sits inside logging so rejected requests are still
    logged with their request ID.

Route-level dependencies (in declaration order):
    [RateLimit("strict")] → [protect] → [require_admin] → handler
"""
