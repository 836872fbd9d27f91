"""
Guide2Umrah Backend: FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn guide2umrah.main:app) and the test suite.
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────┐ ┌──────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│ Logging │→│ GZip/CORS│  │
    │  └──────────────┘ └──────────┘ └─────────┘ └──────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  /api/login  /api/packages  /api/services                │
    │  /api/subscriptions  /health  [frontend catch-all]       │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ Auth→401 │ NotFound→404 │ Conflict→409 │
    │  RateLimit→429 │ Image host→502 │ Mail→503 │ DB→500      │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration check (logged, not fatal) → ready
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from guide2umrah import __version__
from guide2umrah.config import settings
from guide2umrah.database import dispose_engine
from guide2umrah.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    EmailDeliveryError,
    Guide2UmrahError,
    ImageStorageError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from guide2umrah.middleware.logging import RequestLoggingMiddleware
from guide2umrah.middleware.rate_limit import RateLimitMiddleware
from guide2umrah.middleware.request_id import RequestIDMiddleware, request_id_var
from guide2umrah.routes import auth, health, packages, services, subscriptions
from guide2umrah.routes.frontend import build_frontend_router

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Er is iets misgegaan. Probeer het opnieuw."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Called once during startup, before anything else logs.
    Format: 2024-01-15T12:00:00 [INFO] guide2umrah.services.auth_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries log every call at DEBUG/INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx", "botocore", "boto3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Guide2Umrah Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: reads and /health keep working without the secrets
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Guide2Umrah Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the application exception hierarchy to HTTP responses.

    Handler hierarchy:
        ValidationError         → 400 (details include the offending field)
        AuthenticationError     → 401 + WWW-Authenticate: Bearer
        NotFoundError           → 404
        ConflictError           → 409
        RateLimitExceededError  → 429 + Retry-After
        ImageStorageError       → 502
        EmailDeliveryError      → 503
        DatabaseError           → 500, generic message
        Guide2UmrahError (base) → 500
        Exception (fallback)    → 500, generic message

    Internal context (SQL errors, S3 keys) is logged, never returned, except
    for ValidationError whose context only describes the client's input.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, {"retry_after": exc.retry_after}),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(ImageStorageError)
    async def handle_image_storage_error(request: Request, exc: ImageStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] Image host error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=502,
            content=_error_body("image_storage_error", exc.message),
        )

    @app.exception_handler(EmailDeliveryError)
    async def handle_email_delivery_error(request: Request, exc: EmailDeliveryError):
        rid = request_id_var.get("")
        logger.error("[%s] Mail delivery error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=503,
            content=_error_body("email_delivery_error", exc.message),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", GENERIC_ERROR),
        )

    @app.exception_handler(Guide2UmrahError)
    async def handle_application_error(request: Request, exc: Guide2UmrahError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", GENERIC_ERROR),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Middleware executes in REVERSE order of addition, so the chain below
    runs RateLimit → RequestID → Logging → GZip → CORS → route.
    """
    app = FastAPI(
        title="Guide2Umrah API",
        description=(
            "Backend of the Guide2Umrah travel agency: Umrah packages, extra "
            "services, photo uploads, dashboard login and the launch mailing list."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Retry-After",
        ],
    )

    # Small JSON bodies are not worth compressing
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # First to execute = last added
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(packages.router)
    app.include_router(services.router)
    app.include_router(subscriptions.router)
    app.include_router(health.router)

    # Catch-all; must come after every API router
    if settings.frontend_build_dir:
        if Path(settings.frontend_build_dir).is_dir():
            app.include_router(build_frontend_router(settings.frontend_build_dir))
        else:
            logger.warning(
                "FRONTEND_BUILD_DIR %s is not a directory; dashboard not served",
                settings.frontend_build_dir,
            )

    return app


# uvicorn expects `guide2umrah.main:app` to be importable
app = create_app()
