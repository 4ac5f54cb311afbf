"""
Health check endpoint for the event gateway.

This module reports liveness only; the gateway has no dependencies that
are checked at request time.
"""

import time

from fastapi import APIRouter
from pydantic import BaseModel

from eventgate import __version__


class HealthStatus(BaseModel):
    """Health status response model."""
    status: str
    timestamp: int
    version: str
    uptime_seconds: float


# Track service start time for uptime calculation
_start_time = time.time()

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Basic health check",
    description="Returns liveness information for the gateway process"
)
async def health_check() -> HealthStatus:
    """
    Basic health check endpoint.

    Returns:
        HealthStatus: status, UNIX timestamp, version and uptime.
    """
    current_time = time.time()

    return HealthStatus(
        status="ok",
        timestamp=int(current_time),
        version=__version__,
        uptime_seconds=round(current_time - _start_time, 3)
    )
