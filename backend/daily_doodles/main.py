"""
Daily Doodles Backend — FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers; the
       lifespan builds the shared GeminiService and the per-browser
       SessionRegistry and tears them down on shutdown.
Who:   uvicorn (`uvicorn daily_doodles.main:app`), and tests via create_app().

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                         FastAPI App                          │
    │                                                              │
    │  Middleware:  Rate Limit → Request ID → Logging → GZip/CORS  │
    │                                                              │
    │  Routes:  /api/session  /api/auth  /api/dashboard            │
    │           /api/entries  /api/editor (+ WS /voice)  /health   │
    │                                                              │
    │  app.state:                                                  │
    │    ai        GeminiService (shared, stateless per call)      │
    │    sessions  SessionRegistry (one AppSession per browser)    │
    │                                                              │
    │  Exception Handlers:                                         │
    │    Validation→400  Auth→401  NotFound→404  Transition→409    │
    │    Storage/APIError→502  everything else→500                 │
    └──────────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from supabase import AuthError

from daily_doodles import __version__
from daily_doodles.config import settings
from daily_doodles.exceptions import (
    AuthenticationError,
    DailyDoodlesError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from daily_doodles.middleware.logging import RequestLoggingMiddleware
from daily_doodles.middleware.rate_limit import RateLimitMiddleware
from daily_doodles.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from daily_doodles.routes import auth, dashboard, editor, health, session
from daily_doodles.services.gemini_service import GeminiService
from daily_doodles.sessions import SessionRegistry
from daily_doodles.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, to stdout (Docker captures it).

    Format: 2025-01-15T12:00:00 [INFO] daily_doodles.sessions: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party chatter: one line per HTTP call or WebSocket frame
    for noisy in ("uvicorn.access", "httpcore", "httpx", "websockets", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:  logging, config check, shared AI service, session registry.
    Shutdown: unmount every browser session (drops auth subscriptions and
              stops any running dictation).

    Tests that set `app.state.ai` / `app.state.sessions` themselves keep
    their fakes; the lifespan only fills in what is missing.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Daily Doodles Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report the problem
        logger.error("Configuration error: %s", str(e))

    if getattr(app.state, "ai", None) is None:
        app.state.ai = GeminiService()
    if getattr(app.state, "sessions", None) is None:
        app.state.sessions = SessionRegistry(create_supabase_client, app.state.ai)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Daily Doodles Backend shutting down...")
    await app.state.sessions.close_all()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to HTTP responses with one body shape:
        {"error", "message", "details"?, "request_id"}

    Hosted-service failures are logged with their detail but answered
    generically; nothing internal reaches the client.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, "authentication_failed", exc.message, exc.context)

    @app.exception_handler(AuthError)
    async def handle_supabase_auth_error(request: Request, exc: AuthError):
        logger.warning("[%s] Supabase auth error: %s", request_id_var.get(""), exc.message)
        return _error_response(401, "authentication_failed", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message, exc.context)

    @app.exception_handler(InvalidTransitionError)
    async def handle_invalid_transition(request: Request, exc: InvalidTransitionError):
        logger.info("[%s] %s", request_id_var.get(""), exc.message)
        return _error_response(409, "invalid_transition", exc.message, exc.context)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("[%s] Storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(502, "storage_error", exc.message)

    @app.exception_handler(APIError)
    async def handle_database_error(request: Request, exc: APIError):
        logger.error("[%s] Supabase database error: %s", request_id_var.get(""), exc.message)
        return _error_response(
            502,
            "storage_error",
            "The journal database could not complete the request. Please try again.",
        )

    @app.exception_handler(DailyDoodlesError)
    async def handle_app_error(request: Request, exc: DailyDoodlesError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Daily Doodles API",
        description=(
            "Backend for a personal journaling app: Supabase accounts and entries, "
            "Gemini prompts and mood insights, and live voice dictation."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Executes in reverse order of addition: RateLimit runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # the session cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(session.router)
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(editor.router)
    app.include_router(health.router)

    return app


# uvicorn daily_doodles.main:app
app = create_app()
