"""
TrialDoc Backend - FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, routers and the
       ConnectionManager; lifespan() configures logging on startup and
       releases the database engine and HTTP client on shutdown.
Who:   uvicorn (`uvicorn trialdoc.main:app`) or the `trialdoc-server` script.

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration (problems are logged; the server keeps
       answering liveness probes)
    Shutdown (also on SIGTERM/SIGINT, which uvicorn turns into a lifespan
    shutdown):
    1. ConnectionManager.close() (production: DEALLOCATE ALL, then dispose)
    2. Close the completion-service HTTP client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trialdoc import __version__
from trialdoc.config import settings
from trialdoc.database import build_connection_manager
from trialdoc.exceptions import TrialDocError, ValidationError
from trialdoc.middleware.logging import RequestLoggingMiddleware
from trialdoc.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from trialdoc.routes import auth, claude, documents, health
from trialdoc.services.claude_service import claude_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once: stdout, one line per record.

    Format: 2025-07-15T14:53:22 [INFO] trialdoc.services.auth_service: ...
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
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("TrialDoc Backend %s starting (mode=%s)", __version__, settings.environment.value)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        # Keep serving: liveness still answers and affected routes report 500

    logger.info("Server ready at http://%s:%d", settings.host, settings.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("TrialDoc Backend shutting down...")
    await app.state.connection_manager.close()
    await claude_service.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the JSON error envelope.

        TrialDocError subclasses → their own status_code / error_code
        RequestValidationError   → 400 (malformed JSON body or parameters)
        Exception                → 500, generic message, stack trace logged

    `details` is only returned for client errors (400); server-side context
    stays in the logs. Unhandled errors carry X-Request-ID but no CORS
    headers, so browser clients read `request_id` from the body.
    """

    @app.exception_handler(TrialDocError)
    async def handle_application_error(request: Request, exc: TrialDocError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
            )
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        content = {
            "error": exc.error_code,
            "message": exc.message,
            "request_id": rid,
        }
        if isinstance(exc, ValidationError) and exc.context:
            content["details"] = exc.context
        headers = None
        if exc.status_code == 401:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        logger.info("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": ValidationError.error_code,
                "message": "Request body or parameters are invalid",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    # Starlette serves this handler from ServerErrorMiddleware, outside the
    # RequestID and CORS middleware, so the correlation header is set here.
    # CORS headers are absent on these responses.
    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
            headers={REQUEST_ID_HEADER: rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Assemble the application.

    The ConnectionManager is attached here rather than in the lifespan so the
    app is usable under transports that skip lifespan events; the engine
    itself is only created on first use.
    """
    app = FastAPI(
        title="TrialDoc API",
        description=(
            "Clinical-trial document management with bearer-token auth and "
            "Claude-backed clinical text analysis."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.connection_manager = build_connection_manager(settings)

    # ── Middleware (last added runs first) ────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials="*" not in settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(documents.router)
    app.include_router(claude.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve on HOST:PORT (default 0.0.0.0:4000)."""
    uvicorn.run(
        "trialdoc.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
