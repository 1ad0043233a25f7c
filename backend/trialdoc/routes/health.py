"""
TrialDoc Backend - Liveness & Health Routes
=============================================

What:  GET / (liveness) and GET /health (readiness).
Who:   Load balancers, container health checks, monitoring.

Status levels for /health:
    healthy:    database answers and the completion credential is set (200)
    degraded:   database answers, credential missing (200)
    unhealthy:  database unreachable (503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response, status

from trialdoc import __version__
from trialdoc.config import settings
from trialdoc.database import ConnectionManager, get_connection_manager
from trialdoc.schemas.common import HealthResponse, StatusResponse
from trialdoc.services.claude_service import claude_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_model=StatusResponse, summary="Liveness probe")
async def root() -> StatusResponse:
    return StatusResponse(status="API is running")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Pings the database and reports whether the completion service is configured.",
)
async def health_check(
    response: Response,
    manager: ConnectionManager = Depends(get_connection_manager),
) -> HealthResponse:
    db_status = "connected"
    llm_status = "configured"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        await manager.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    # ── Check Completion Service ──────────────────────────────────────────
    if not await claude_service.health_check():
        llm_status = "not_configured"
        if overall != "unhealthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        environment=settings.environment.value,
        database=db_status,
        llm=llm_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
