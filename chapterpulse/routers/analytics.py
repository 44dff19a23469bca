"""
Analytics router — dashboard state, load controls and derived views.

Wired to:
- LoadCoordinator for loading, pagination, refresh and filters
- DashboardViews for memoized aggregations over the current snapshot
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from chapterpulse.engine.coordinator import LoadCoordinator
from chapterpulse.engine.lookups import build_member_lookup
from chapterpulse.engine.views import DashboardViews
from chapterpulse.models.enums import SelectedMetric
from chapterpulse.models.records import DateRange
from chapterpulse.routers.dependencies import get_coordinator, get_views
from chapterpulse.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class SelectedMetricRequest(BaseModel):
    metric: SelectedMetric


def _state_payload(coordinator: LoadCoordinator) -> dict:
    return coordinator.state.model_dump(mode="json")


# =============================================================================
# State and load controls
# =============================================================================


@router.get("/state")
async def get_state(coordinator: LoadCoordinator = Depends(get_coordinator)):
    """Current analytics state: loaded records, cursors, stage and filters."""
    return {"success": True, "data": _state_payload(coordinator)}


@router.post("/refresh")
async def refresh(coordinator: LoadCoordinator = Depends(get_coordinator)):
    """Drop loaded data and reload members, events and attendance from page 0."""
    logger.info("refresh_requested")
    await coordinator.refresh()
    return {"success": True, "data": _state_payload(coordinator)}


@router.post("/members/page/{page}")
async def load_members_page(
    page: int = Path(..., ge=0),
    coordinator: LoadCoordinator = Depends(get_coordinator),
):
    """Load a specific members page and the dependent events and attendance."""
    await coordinator.load_members(page)
    return {"success": True, "data": _state_payload(coordinator)}


@router.post("/members/load-more")
async def load_more_members(coordinator: LoadCoordinator = Depends(get_coordinator)):
    loaded = await coordinator.load_more_members()
    return {"success": True, "data": {"loaded": loaded, "state": _state_payload(coordinator)}}


@router.post("/events/load-more")
async def load_more_events(coordinator: LoadCoordinator = Depends(get_coordinator)):
    """
    Advance to the next events page.

    ``loaded`` is false when there was nothing more to load or a load was
    already running; no request reaches the data source in that case.
    """
    loaded = await coordinator.load_more_events()
    return {"success": True, "data": {"loaded": loaded, "state": _state_payload(coordinator)}}


@router.put("/date-range")
async def set_date_range(
    date_range: DateRange,
    coordinator: LoadCoordinator = Depends(get_coordinator),
):
    """Change the event window; events and attendance reload from the first page."""
    await coordinator.set_date_range(date_range)
    return {"success": True, "data": _state_payload(coordinator)}


@router.put("/selected-metric")
async def set_selected_metric(
    request: SelectedMetricRequest,
    coordinator: LoadCoordinator = Depends(get_coordinator),
):
    state = coordinator.set_selected_metric(request.metric)
    return {"success": True, "data": {"selected_metric": state.selected_metric.value}}


# =============================================================================
# Derived views
# =============================================================================


@router.get("/health-metrics")
async def get_health_metrics(
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    """Totals, retention, active-brother attendance rate and average points."""
    metrics = views.health_metrics(coordinator.state)
    return {"success": True, "data": metrics.model_dump(mode="json")}


@router.get("/leaderboard")
async def get_leaderboard(
    limit: Optional[int] = Query(None, ge=0, le=500),
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    """Top brothers by points."""
    rows = views.leaderboard(coordinator.state, limit=limit)
    return {"success": True, "data": [r.model_dump(mode="json") for r in rows]}


@router.get("/events")
async def get_event_analytics(
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    rows = views.event_analytics(coordinator.state)
    return {"success": True, "data": [r.model_dump(mode="json") for r in rows]}


@router.get("/categories")
async def get_category_breakdown(
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    """Points and attendance per normalized event category."""
    rows = views.category_breakdown(coordinator.state)
    return {"success": True, "data": [r.model_dump(mode="json") for r in rows]}


@router.get("/houses")
async def get_house_points(
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    rows = views.house_points(coordinator.state)
    return {"success": True, "data": [r.model_dump(mode="json") for r in rows]}


@router.get("/pledge-classes")
async def get_pledge_class_points(
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    rows = views.pledge_class_points(coordinator.state)
    return {"success": True, "data": [r.model_dump(mode="json") for r in rows]}


@router.get("/diversity")
async def get_diversity(
    today: Optional[date] = Query(None, description="Reference date for graduation insights"),
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    """Demographic distributions, the weighted diversity score and insights."""
    metrics = views.diversity(coordinator.state, today=today)
    return {"success": True, "data": metrics.model_dump(mode="json")}


@router.get("/members/{user_id}/category-points")
async def get_member_category_points(
    user_id: str,
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    """One member's points per canonical category and progress toward each requirement."""
    state = coordinator.state
    if user_id not in build_member_lookup(state.members):
        raise HTTPException(status_code=404, detail=f"Member {user_id} not found")
    points = views.member_category_points(state, user_id)
    return {"success": True, "data": points.model_dump(mode="json")}


@router.get("/semester-report")
async def get_semester_report(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    coordinator: LoadCoordinator = Depends(get_coordinator),
    views: DashboardViews = Depends(get_views),
):
    """
    End-of-semester report over the loaded records.

    The window defaults to the current date range.
    """
    try:
        report = views.semester_report(coordinator.state, start=start, end=end)
    except ValueError as e:
        logger.warning("semester_report_rejected", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": report.model_dump(mode="json")}
