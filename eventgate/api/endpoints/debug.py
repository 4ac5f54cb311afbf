"""
Debug log endpoints.

Exposes the recent outcome entries kept in memory. Clearing the buffer
is only possible in test mode.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from eventgate.api.dependencies import get_debug_log, get_settings
from eventgate.config.settings import Settings
from eventgate.services.debug_log import DebugLog

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("", summary="Recent request outcomes")
async def get_debug_entries(
    debug_log: DebugLog = Depends(get_debug_log),
    settings: Settings = Depends(get_settings)
) -> Dict[str, Any]:
    """
    Return the debug log.

    Returns:
        Debug flag, buffer statistics and the entries, newest first
    """
    return {
        "debug_logging": settings.debug_logging,
        "stats": debug_log.stats(),
        "entries": debug_log.entries(),
    }


@router.delete("", summary="Clear the debug log")
async def clear_debug_entries(
    debug_log: DebugLog = Depends(get_debug_log),
    settings: Settings = Depends(get_settings)
) -> Dict[str, Any]:
    if not settings.test_mode:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    debug_log.clear()
    return {"status": "cleared"}
