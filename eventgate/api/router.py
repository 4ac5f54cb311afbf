"""
API Router Configuration.

This module collects the gateway endpoints:
- Dry run (the collect endpoint is registered by create_app)
- Debug log inspection
- Health checks
"""

from fastapi import APIRouter

from eventgate.api.endpoints import collect, debug, health

api_router = APIRouter()

api_router.include_router(
    collect.router,
    tags=["Collect"]
)

api_router.include_router(
    debug.router,
    tags=["Debug"]
)

api_router.include_router(
    health.router,
    tags=["Health"]
)
