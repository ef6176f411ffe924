"""
PlaceShare Backend: Health Check Route
========================================

What:  GET /health for monitoring and load balancer probes.
How:   Runs SELECT 1 through a request session and asks the geocoder whether
       it is configured. No geocoding quota is spent.

Status levels:
    healthy    database reachable and geocoder configured
    degraded   database reachable, geocoder unconfigured (reads still work)
    unhealthy  database unreachable
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from placeshare import __version__
from placeshare.database import get_db_session
from placeshare.schemas.common import HealthResponse
from placeshare.services.google_geocoder import geocoder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(db: AsyncSession = Depends(get_db_session)) -> HealthResponse:
    db_status = "connected"
    geocoder_status = "configured"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = "disconnected"
        overall = "unhealthy"
        await db.rollback()
        logger.warning("Health check: database unreachable: %s", str(e))

    if not await geocoder.health_check():
        geocoder_status = "unconfigured"
        if overall == "healthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoder=geocoder_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
