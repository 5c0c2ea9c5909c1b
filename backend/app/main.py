"""
Warden API - FastAPI Application Factory
==========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() builds the per-app services (token
       service, password hasher, rate limiters, sweeper), registers
       middleware, exception handlers and routers, and returns the app.
Who:   Called by uvicorn to start the server (uvicorn app.main:app) and by
       the test suite with its own Settings.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  CORS → Secure Headers → Request ID → Logging            │
    │       → Rate Limit (standard) → GZip → Router            │
    │                                                          │
    │  Routes:                                                 │
    │  {API_PREFIX}/users/...   {API_PREFIX}/   /health        │
    │                                                          │
    │  Exception Handlers:                                     │
    │  WardenError→status_code │ 422→400 │ 404 │ Exception→500 │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   log the configuration summary, start the rate-limit sweeper
    Shutdown:  stop the sweeper, dispose the database engine
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import Settings, settings as default_settings
from app.database import dispose_engine
from app.exceptions import (
    DatabaseError,
    RateLimitExceededError,
    UnauthorizedError,
    WardenError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import STANDARD, RateLimitMiddleware, build_rate_limiters
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.middleware.security_headers import SecureHeadersMiddleware
from app.routes import health, index, users
from app.services.password_service import PasswordHasher
from app.services.rate_limiter import InMemoryRateLimitStore, RateLimitSweeper
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure the root logger for the whole application.

    Console output goes to stdout. File output is two daily-rotated files
    in LOGS_DIR: app.log (INFO and up, 14 days kept) and error.log (ERROR
    and up, 30 days kept). LOG_TO_FILE picks which of the two destinations
    are active.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers = []

    if settings.log_to_console_enabled:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        handlers.append(console)

    if settings.log_to_file_enabled:
        logs_dir = Path(settings.logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        app_file = TimedRotatingFileHandler(
            logs_dir / "app.log", when="midnight", backupCount=14, encoding="utf-8"
        )
        app_file.setLevel(logging.INFO)
        app_file.setFormatter(formatter)
        handlers.append(app_file)

        error_file = TimedRotatingFileHandler(
            logs_dir / "error.log", when="midnight", backupCount=30, encoding="utf-8"
        )
        error_file.setLevel(logging.ERROR)
        error_file.setFormatter(formatter)
        handlers.append(error_file)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        handlers=handlers or [logging.NullHandler()],
        force=True,
    )

    # Third-party loggers are noisy at DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    sweeper: RateLimitSweeper = app.state.rate_limit_sweeper

    # ── Startup ───────────────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("Warden API v%s starting up (%s)", __version__, settings.environment)
    logger.info("API prefix: %s", settings.api_prefix)
    logger.info(
        "Rate limits: standard %d/%dms, strict %d/%dms",
        settings.rate_limit_max,
        settings.rate_limit_window_ms,
        settings.strict_rate_limit_max,
        settings.strict_rate_limit_window_ms,
    )
    sweeper.start()
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Warden API shutting down...")
    await sweeper.stop()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(message: str, exc: Optional[BaseException], settings: Settings) -> Dict[str, Any]:
    """The error envelope; the stack is included outside production only."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if exc is not None and not settings.is_production:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return body


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Map exceptions to the {success, message, stack?} envelope.

    Handler hierarchy:
        RateLimitExceededError  → 429 with X-RateLimit-* and Retry-After
        UnauthorizedError       → 401, never carries a stack
        DatabaseError           → 500, context logged server-side only
        WardenError (base)      → exc.status_code
        RequestValidationError  → 400, first validation message
        HTTPException           → 404 "Not Found - [METHOD]:[path]" or detail
        Exception (fallback)    → 500 "Internal Server Error"
    """

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, None, settings),
            headers=exc.headers,
        )

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        rid = request_id_var.get("")
        logger.warning("[%s] Unauthorized %s %s: %s", rid, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, None, settings),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc, settings),
        )

    @app.exception_handler(WardenError)
    async def handle_warden_error(request: Request, exc: WardenError):
        rid = request_id_var.get("")
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(level, "[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc, settings),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(
            status_code=400,
            content=error_body(message, exc, settings),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Not Found - [{request.method}]:[{request.url.path}]"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, None, settings),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal Server Error", exc, settings),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Rate-limit state and the sweeper are created per app, so every app
    instance (and every test) starts with empty counters.
    """
    settings = settings or default_settings
    setup_logging(settings)

    app = FastAPI(
        title="Warden API",
        description=(
            "User registration, login and profile management with bearer-token "
            "authentication, admin-only user lookups and rate limiting."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Per-app services ──────────────────────────────────────────────────
    store = InMemoryRateLimitStore()
    app.state.settings = settings
    app.state.token_service = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime_seconds=settings.jwt_expires_in,
    )
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.rate_limit_store = store
    app.state.rate_limiters = build_rate_limiters(settings, store)
    app.state.rate_limit_sweeper = RateLimitSweeper(
        store, interval=settings.rate_limit_sweep_interval
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first, so this list reads innermost to outermost
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiters[STANDARD])
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecureHeadersMiddleware, production=settings.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list if settings.is_production else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router, prefix=settings.api_prefix)
    app.include_router(index.router, prefix=settings.api_prefix)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
