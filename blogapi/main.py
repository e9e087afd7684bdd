"""
Blog API — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes settings, middleware registration, route mounting,
       exception handling and lifecycle management in one place.
How:   `create_app(settings)` builds an AppContext (engine, services) and
       returns a configured FastAPI instance carrying it on app.state.
Who:   uvicorn (`uvicorn blogapi.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│Rate Limit│→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes (API_PREFIX):                               │
    │  ┌──────────┐ ┌────────┐ ┌──────────┐ ┌──────────┐  │
    │  │ /register│ │ /blogs │ │/comments │ │/categories│ │
    │  └──────────┘ └────────┘ └──────────┘ └──────────┘  │
    │                                                     │
    │  Exception Handlers → uniform error envelope        │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config validation → storage dir → DB probe
              (tenacity) → optional create_all
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogapi import __version__
from blogapi.config import Settings
from blogapi.context import AppContext
from blogapi.database import create_schema, verify_connection
from blogapi.exceptions import BlogApiError, RateLimitExceededError, ValidationError
from blogapi.middleware.logging import RequestLoggingMiddleware
from blogapi.middleware.rate_limit import RateLimitMiddleware
from blogapi.middleware.request_id import RequestIDMiddleware, request_id_var
from blogapi.routes import auth, blogs, categories, comments, files, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s to stdout
    (Docker captures stdout). Chatty third-party loggers are raised to
    WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    ctx: AppContext = app.state.context
    settings = ctx.settings

    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Blog API %s starting up (environment=%s)", __version__, settings.environment)

    # Fail fast: a production deployment with the placeholder secret would
    # accept tokens anyone can forge
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise

    ctx.files.ensure_root()
    logger.info("Storage directory: %s", ctx.files.storage_root)

    await verify_connection(ctx.engine, settings)
    if settings.db_create_all:
        logger.info("DB_CREATE_ALL set; creating missing tables")
        await create_schema(ctx.engine)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Blog API shutting down...")
    await ctx.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def error_envelope(
    request: Request,
    error: str,
    message: str,
    errors: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "message": message,
        "errors": errors or None,
        "request_id": _request_id(request),
    }


def _field_path(loc) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts first
    parts = [str(p) for p in loc]
    if len(parts) > 1 and parts[0] in {"body", "query", "path", "header", "cookie"}:
        parts = parts[1:]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the uniform envelope.

    Handler hierarchy:
        RequestValidationError  → 400 validation_error, per-field errors
        BlogApiError subclasses → their own status_code / error_code
        HTTPException           → its status (unknown route, bad method)
        Exception (fallback)    → 500 server_error

    Internal errors never expose details. With ENVIRONMENT=development the
    500 envelope additionally carries `debug` (exception type and message).
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_path(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", _request_id(request), errors)
        return JSONResponse(
            status_code=400,
            content=error_envelope(request, "validation_error", "Validation failed", errors),
        )

    @app.exception_handler(BlogApiError)
    async def handle_blog_api_error(request: Request, exc: BlogApiError):
        rid = _request_id(request)
        headers = {}

        if exc.status_code >= 500:
            # Context is for the logs only
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            content = error_envelope(
                request, exc.error_code, "An internal error occurred. Please try again later."
            )
            if app.state.context.settings.is_development:
                content["debug"] = {"type": type(exc).__name__, "message": exc.message}
            return JSONResponse(status_code=exc.status_code, content=content)

        if exc.status_code in (401, 403):
            logger.info("[%s] %s: %s", rid, exc.error_code, exc.context)
        else:
            logger.debug("[%s] %s: %s", rid, exc.error_code, exc.message)

        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        if exc.status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"

        errors = exc.errors if isinstance(exc, ValidationError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(request, exc.error_code, exc.message, errors),
            headers=headers or None,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        codes = {404: "not_found", 405: "method_not_allowed"}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(
                request, codes.get(exc.status_code, "http_error"), str(exc.detail)
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        content = error_envelope(
            request,
            "server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )
        if app.state.context.settings.is_development:
            content["debug"] = {"type": type(exc).__name__, "message": str(exc)}
        return JSONResponse(status_code=500, content=content)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings: Explicit settings (tests); read from the environment when None.
    """
    settings = settings or Settings()
    context = AppContext.build(settings)

    app = FastAPI(
        title="Blog API",
        description=(
            "Blogging platform backend: accounts, blogs with publish state and view "
            "counts, threaded comments, categories, likes and images."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.context = context

    # ── Middleware ────────────────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → RateLimit →
    # Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    for module in (auth, blogs, comments, categories):
        app.include_router(module.router, prefix=settings.api_prefix)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


# uvicorn imports `blogapi.main:app`
app = create_app()
