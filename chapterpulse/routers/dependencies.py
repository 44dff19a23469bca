"""
FastAPI dependencies for the analytics coordinator and its derived views.
"""

from functools import lru_cache

from chapterpulse.config import get_settings
from chapterpulse.connectors import build_source_from_settings
from chapterpulse.engine.coordinator import LoadCoordinator
from chapterpulse.engine.views import DashboardViews


@lru_cache
def get_coordinator() -> LoadCoordinator:
    """
    Get the process-wide load coordinator (singleton).

    The data source is chosen from configuration: Supabase when a project URL
    is set, otherwise an empty in-memory source.
    """
    settings = get_settings()
    return LoadCoordinator(build_source_from_settings(settings), settings=settings)


@lru_cache
def get_views() -> DashboardViews:
    """Get the process-wide derived-view cache (singleton)."""
    return DashboardViews(settings=get_settings())
