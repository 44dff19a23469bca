"""
System health router.

Wired to:
- LoadCoordinator for data-source and load-stage status
- Settings for configuration
"""

import time

from fastapi import APIRouter, Depends

from chapterpulse import __version__
from chapterpulse.config import get_settings
from chapterpulse.engine.coordinator import LoadCoordinator
from chapterpulse.models.enums import LoadStage
from chapterpulse.routers.dependencies import get_coordinator
from chapterpulse.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()


@router.get("/health")
async def system_health(coordinator: LoadCoordinator = Depends(get_coordinator)):
    """
    Get system health status.
    Reports the data source in use and whether the last load failed.
    """
    settings = get_settings()
    state = coordinator.state
    degraded = state.stage == LoadStage.ERROR

    if degraded:
        logger.warning("system_health_degraded", error=state.error)

    return {
        "success": True,
        "data": {
            "status": "degraded" if degraded else "healthy",
            "version": __version__,
            "uptime_seconds": round(time.time() - _startup_time, 1),
            "data_source": type(coordinator.source).__name__,
            "supabase_configured": settings.uses_supabase,
            "stage": state.stage.value,
            "error": state.error,
            "loaded": {
                "members": len(state.members),
                "events": len(state.events),
                "attendance": len(state.attendance),
            },
        },
    }
