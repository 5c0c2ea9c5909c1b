"""
Warden API - Custom Exception Hierarchy
=========================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the JSON envelope {"success": false, "message": ...}.
Who:   Raised by services, dependencies and middleware; caught by handlers.

Exception Hierarchy:
    WardenError (base)
    ├── ValidationError          → 400 Bad Request
    ├── ConflictError            → 400 Bad Request (duplicate email)
    ├── UnauthorizedError        → 401 Unauthorized
    │   └── InvalidTokenError    → 401 (uniform message for every token failure)
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    └── ConfigurationError       → raised at startup only, never per request
"""

from typing import Any, Dict, Optional


class WardenError(Exception):
    """
    Base exception for all Warden application errors.

    Attributes:
        message:      User-facing error description (safe to return in API response)
        context:      Additional debug info (logged but NOT returned to client)
        status_code:  HTTP status the global handler responds with
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(WardenError):
    """Invalid startup configuration (missing secret, bad work factor)."""


class ValidationError(WardenError):
    """
    Raised when client input fails validation.

    When:    Missing fields, malformed email, short password.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(WardenError):
    """
    Raised when a write would violate the unique email constraint.

    HTTP:    400 Bad Request. The message stays generic ("already exists",
             "already in use") whether the conflict was caught by the
             pre-check or by the database unique index.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "User already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnauthorizedError(WardenError):
    """
    Raised when the caller cannot be authenticated.

    HTTP:    401 Unauthorized
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(UnauthorizedError):
    """
    Any token verification failure.

    Bad signature, malformed structure, expiry, missing subject and unknown
    subject all produce this same message. The specific cause goes into
    `context` for server-side logging only.
    """

    MESSAGE = "Not authorized, invalid token"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=self.MESSAGE, context=context)


class ForbiddenError(WardenError):
    """
    Raised when an authenticated caller lacks the required role.

    HTTP:    403 Forbidden (the caller is known, but not privileged)
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Not authorized as an admin",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(WardenError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(WardenError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error. The client only ever sees the generic
             message; query details are kept in `context` for the logs.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(WardenError):
    """
    Raised when a client exceeds a rate limiter's window budget.

    HTTP:    429 Too Many Requests

    Attributes:
        retry_after: Seconds until the window resets
        headers:     X-RateLimit-* and Retry-After headers for the response
    """

    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests, please try again later.",
        retry_after: int = 60,
        headers: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
        self.headers = dict(headers or {})
        self.headers.setdefault("Retry-After", str(retry_after))
