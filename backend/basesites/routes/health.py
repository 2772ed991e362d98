"""
BaseSites Backend: Health Check Route
=====================================

What:  Liveness/readiness probe for load balancers and container health checks.
How:   Runs `SELECT 1` against the database and reads the identity
       provider's circuit state (no network call).

Status levels:
    healthy    database reachable, identity circuit closed
    degraded   database reachable, identity circuit open or half-open
    unhealthy  database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from basesites import __version__
from basesites.database import engine
from basesites.schemas.common import HealthResponse
from basesites.services.identity_service import CircuitBreaker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check(request: Request):
    db_status = "connected"
    identity_status = "available"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    # ── Identity provider ─────────────────────────────────────────────────
    gateway = getattr(request.app.state, "identity_gateway", None)
    if gateway is None:
        identity_status = "not_configured"
        overall = "degraded" if overall == "healthy" else overall
    elif gateway.circuit_state != CircuitBreaker.CLOSED:
        identity_status = "circuit_open"
        overall = "degraded" if overall == "healthy" else overall

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        identity=identity_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=body.model_dump())
