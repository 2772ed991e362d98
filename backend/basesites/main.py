"""
BaseSites Backend: FastAPI Application Factory
==============================================

What:  Builds the FastAPI application: middleware, exception handlers,
       routers and the startup/shutdown lifecycle.
Who:   uvicorn (`uvicorn basesites.main:app`) and the test suite.

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate production settings (logged, not fatal; /health stays up)
    3. Create the identity gateway on `app.state.identity_gateway`

    Shutdown:
    1. Close the identity gateway's HTTP client
    2. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from basesites import __version__
from basesites.config import settings
from basesites.database import dispose_engine
from basesites.exceptions import BaseSitesError, DatabaseError
from basesites.middleware.api_key import ApiKeyMiddleware
from basesites.middleware.logging import RequestLoggingMiddleware
from basesites.middleware.rate_limit import RateLimitMiddleware
from basesites.middleware.request_id import RequestIDMiddleware, request_id_var
from basesites.routes import (
    admin,
    health,
    locations,
    logbook,
    profile,
    saved_locations,
    submissions,
    subscriptions,
)
from basesites.services.identity_service import HttpIdentityGateway

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from these is covered by basesites.access
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("BaseSites Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        logger.error("Fix the configuration and restart the server.")

    app.state.identity_gateway = HttpIdentityGateway.from_settings()
    logger.info("Identity provider: %s", settings.identity_url)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("BaseSites Backend shutting down...")
    await app.state.identity_gateway.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    body = {
        "success": False,
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        body["details"] = jsonable_encoder(details)
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the shared error envelope.

        BaseSitesError subclasses → their own status_code / error_code
        DatabaseError             → 500 with a generic message (context logged)
        RequestValidationError    → 400 invalid_input with details.errors
        Exception (fallback)      → 500, stack trace logged only
    """

    @app.exception_handler(BaseSitesError)
    async def handle_app_error(request: Request, exc: BaseSitesError):
        rid = request_id_var.get("")

        if isinstance(exc, DatabaseError):
            # Context stays server-side
            logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
            message = "An internal error occurred. Please try again later."
            details = None
        elif exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            message = exc.message
            details = exc.context
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            message = exc.message
            details = exc.context

        headers = {}
        retry_after = getattr(exc, "retry_after", None)
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, message, details),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = exc.errors()
        logger.warning("[%s] Request validation failed on %s: %d error(s)", rid, request.url.path, len(errors))
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "invalid_input",
                "Invalid request data",
                {"errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                    for err in errors
                ]},
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
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
    app = FastAPI(
        title="BaseSites API",
        description=(
            "BASE jumping site directory: community submissions with admin review, "
            "favorites, personal logbook and subscription status."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: CORS → RateLimit → ApiKey → RequestID → Logging → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ApiKeyMiddleware)
    app.add_middleware(RateLimitMiddleware)
    # Outermost, so 401/403/429 envelopes from the inner layers carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(locations.router)
    app.include_router(saved_locations.router)
    app.include_router(submissions.router)
    app.include_router(admin.router)
    app.include_router(logbook.router)
    app.include_router(profile.router)
    app.include_router(subscriptions.router)

    return app


app = create_app()
