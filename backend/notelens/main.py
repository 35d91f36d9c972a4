"""
NoteLens Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       lifespan() opens the BackendSession the routes talk to the platform
       through and disposes the database engine on shutdown.
Who:   uvicorn (`uvicorn notelens.main:app`), tests (create_app()).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │  Middleware:  Request ID → Access Log → CORS             │
    │                                                          │
    │  app.state.backend       BackendSession (platform)       │
    │  app.state.interactions  InteractionRegistry (per user)  │
    │                                                          │
    │  Routes: /api/auth  /api/notes  /api/vision              │
    │          /api/language  /api/ai  /health                 │
    └──────────────────────────────────────────────────────────┘

Error mapping:
    ValidationError          → 400
    AuthenticationError      → 401
    NotFoundError            → 404
    UploadError              → 502
    InvocationError          → 502
    CircuitBreakerOpenError  → 503 + Retry-After
    DatabaseError            → 500 (generic message)
    NoteLensError / other    → 500
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notelens import __version__
from notelens.config import settings
from notelens.database import dispose_engine
from notelens.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    DatabaseError,
    InvocationError,
    NoteLensError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from notelens.middleware.logging import RequestLoggingMiddleware
from notelens.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from notelens.routes import auth, health, interaction, language, notes, vision
from notelens.services.interaction import InteractionRegistry
from notelens.session import BackendSession

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] notelens.services.vision_service [a1b2c3d4]: ...
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
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
    setup_logging()
    logger.info("=" * 60)
    logger.info("NoteLens Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving /health so the misconfiguration is visible
        logger.error("Configuration error: %s", str(e))

    async with BackendSession.open(settings) as backend:
        app.state.backend = backend
        logger.info("Callable functions: %s", settings.functions_url)
        logger.info("Storage bucket: %s", settings.storage_bucket)
        logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
        logger.info("=" * 60)

        yield

        logger.info("NoteLens Backend shutting down...")

    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the NoteLensError hierarchy to HTTP responses.

    Starlette resolves handlers along the exception's MRO, so the
    CircuitBreakerOpenError handler wins over the InvocationError one.
    Internal details (SQL, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.warning("Authentication error: %s", exc.message)
        return _error(401, "authentication_error", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        logger.error("Upload error: %s | Context: %s", exc.message, exc.context)
        return _error(502, "upload_error", exc.message)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("Circuit breaker open: %s", exc.message)
        return _error(
            503,
            "service_unavailable",
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(InvocationError)
    async def handle_invocation_error(request: Request, exc: InvocationError):
        logger.error("Remote function %s failed: %s", exc.function, exc.message)
        return _error(502, "function_error", exc.message, {"function": exc.function})

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(NoteLensError)
    async def handle_notelens_error(request: Request, exc: NoteLensError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="NoteLens API",
        description=(
            "Personal notes with AI helpers: image labelling, OCR, sentiment, "
            "translation, moderation, entity extraction and summaries, served "
            "by remote callable functions."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.interactions = InteractionRegistry(idle_timeout=settings.interaction_idle_timeout)

    # Last added runs first: RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(vision.router)
    app.include_router(language.router)
    app.include_router(interaction.router)
    app.include_router(health.router)

    return app


app = create_app()
