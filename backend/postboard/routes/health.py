"""
Postboard Backend - Health Check Route
======================================

What:  GET /health for container and load balancer probes.
How:   Runs SELECT 1 against the database and checks that the image storage
       root is writable.

Status levels:
    healthy:    both checks pass (HTTP 200)
    unhealthy:  any check fails (HTTP 503, stop routing traffic here)
"""

import logging
import os
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from postboard import __version__
from postboard.config import settings
from postboard.database import engine
from postboard.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    storage_status = "writable"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", e)

    if not os.access(settings.storage_root, os.W_OK):
        storage_status = "unavailable"
        logger.warning("Health check: storage root %s is not writable", settings.storage_root)

    healthy = db_status == "connected" and storage_status == "writable"
    if not healthy:
        response.status_code = 503

    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
