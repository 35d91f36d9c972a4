"""
NoteLens Backend — Health Check Route
=======================================

What:  Liveness and dependency status for monitoring and load balancers.
How:   SELECT 1 against the notes database; circuit breaker state of the
       remote functions client (no remote call is made).

Status levels:
    - healthy:   all dependencies operational
    - degraded:  remote functions circuit open
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy import text

from notelens import __version__
from notelens.database import engine
from notelens.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    functions_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    backend = getattr(request.app.state, "backend", None)
    if backend is None or not await backend.functions.health_check():
        functions_status = "circuit_open" if backend is not None else "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        functions=functions_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
