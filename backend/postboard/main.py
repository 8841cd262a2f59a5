"""
Postboard Backend - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers and
       returns a ready app; `app` is the instance uvicorn serves
       (uvicorn postboard.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌─────────┐ ┌─────────────┐ ┌───────────┐  │
    │  │ Req ID   │→│ Logging │→│ Login limit │→│ Session   │  │
    │  └──────────┘ └─────────┘ └─────────────┘ └───────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  /api/login /api/me /api/logout /api/register /api/users │
    │  /api/posts[/{id}]  /api/files/{path}  /health           │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→422 │ Auth→401 │ NotFound→404 │ Limit→429    │
    │  RegistrationLimit→500 │ Storage→500 │ Database→500      │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from postboard import __version__
from postboard.config import settings
from postboard.database import dispose_engine
from postboard.exceptions import (
    AuthenticationError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    PostboardError,
    RateLimitExceededError,
    RegistrationLimitError,
    ValidationError,
    collect_field_errors,
    summarize_field_errors,
)
from postboard.middleware.logging import RequestLoggingMiddleware
from postboard.middleware.rate_limit import LoginRateLimitMiddleware
from postboard.middleware.request_id import RequestIDMiddleware, request_id_var
from postboard.routes import auth, files, health, posts, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process (called once, at startup).

    Format: 2024-01-15T12:00:00 [INFO] postboard.services.post_service: Post 3 created
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Postboard Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving; a development setup runs with the default secret.
        logger.error("Configuration error: %s", e)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Postboard Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, errors: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if errors is not None:
        body["errors"] = errors
    body["request_id"] = request_id_var.get("")
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to status codes and the shared error body.

        ValidationError, RequestValidationError → 422 (with "errors")
        AuthenticationError                     → 401
        NotFoundError                           → 404
        RateLimitExceededError                  → 429 (+ Retry-After)
        RegistrationLimitError                  → 500
        FileStorageError, DatabaseError         → 500
        PostboardError, Exception               → 500

    Internal details (SQL, file paths, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=422,
            content=_error_body("validation_error", exc.message, exc.errors),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = collect_field_errors(exc.errors())
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), sorted(errors))
        return JSONResponse(
            status_code=422,
            content=_error_body("validation_error", summarize_field_errors(errors), errors),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content=_error_body("unauthenticated", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(RegistrationLimitError)
    async def handle_registration_limit(request: Request, exc: RegistrationLimitError):
        logger.warning("[%s] %s (cap=%d)", request_id_var.get(""), exc.message, exc.cap)
        return JSONResponse(
            status_code=500,
            content=_error_body("registration_limit_reached", exc.message),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(PostboardError)
    async def handle_postboard_error(request: Request, exc: PostboardError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Assemble a fresh application.

    Each call builds new middleware instances, so tests get their own login
    rate-limit counters.
    """
    app = FastAPI(
        title="Postboard API",
        description=(
            "Blog backend: session authentication, capped user registration and "
            "posts with tags, filtering, pagination and image attachments."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → LoginRateLimit → GZip →
    # CORS → Session → routes.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.session_https_only,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # the session cookie must cross origins
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(LoginRateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


app = create_app()
