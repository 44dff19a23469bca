"""
Memoized dashboard views over the coordinator state.

Aggregations are pure, so a view only needs recomputing when the loaded
collections change. The cache key is the identity of the current
(members, events, attendance) tuples; the reducer replaces a tuple only when
its contents change, so any new snapshot clears every cached view. Within a
snapshot at most ``MAX_CACHED_VIEWS`` views are kept, least recently used
first out.
"""

from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Callable, Optional

import structlog

from chapterpulse.config import Settings, get_settings
from chapterpulse.engine.aggregation import (
    compute_category_breakdown,
    compute_event_analytics,
    compute_health_metrics,
    compute_house_points,
    compute_member_category_points,
    compute_member_performance,
    compute_pledge_class_points,
)
from chapterpulse.engine.coordinator.state import AnalyticsState
from chapterpulse.engine.diversity import compute_diversity_metrics
from chapterpulse.engine.semester_report import build_semester_report
from chapterpulse.models.analytics import (
    CategoryPointsBreakdown,
    DiversityMetrics,
    EventAnalytics,
    GroupPointsSummary,
    HealthMetrics,
    MemberCategoryPoints,
    MemberPerformance,
)
from chapterpulse.models.report import SemesterReport

logger = structlog.get_logger()

MAX_CACHED_VIEWS = 64


class DashboardViews:
    """Per-snapshot cache of derived views."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._snapshot: Optional[tuple] = None
        self._cache: OrderedDict[tuple, Any] = OrderedDict()
        self.computations = 0

    def _memo(self, state: AnalyticsState, key: tuple, compute: Callable[[], Any]) -> Any:
        snapshot = (state.members, state.events, state.attendance)
        if self._snapshot is None or any(a is not b for a, b in zip(snapshot, self._snapshot)):
            if self._cache:
                logger.debug("view_cache_cleared", views=len(self._cache))
            self._snapshot = snapshot
            self._cache = OrderedDict()

        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        self._cache[key] = compute()
        self.computations += 1
        if len(self._cache) > MAX_CACHED_VIEWS:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug("view_cache_evicted", view=evicted[0])
        return self._cache[key]

    def health_metrics(self, state: AnalyticsState) -> HealthMetrics:
        return self._memo(
            state,
            ("health",),
            lambda: compute_health_metrics(state.members, state.events, state.attendance),
        )

    def leaderboard(self, state: AnalyticsState, limit: Optional[int] = None) -> list[MemberPerformance]:
        limit = self.settings.leaderboard_limit if limit is None else limit
        return self._memo(
            state,
            ("leaderboard", limit),
            lambda: compute_member_performance(
                state.members, state.events, state.attendance, limit=limit
            ),
        )

    def event_analytics(self, state: AnalyticsState) -> list[EventAnalytics]:
        top = self.settings.top_attendees_limit
        return self._memo(
            state,
            ("events", top),
            lambda: compute_event_analytics(
                state.members, state.events, state.attendance, top_attendees=top
            ),
        )

    def category_breakdown(self, state: AnalyticsState) -> list[CategoryPointsBreakdown]:
        return self._memo(
            state,
            ("categories",),
            lambda: compute_category_breakdown(state.members, state.events, state.attendance),
        )

    def house_points(self, state: AnalyticsState) -> list[GroupPointsSummary]:
        return self._memo(
            state,
            ("houses",),
            lambda: compute_house_points(state.members, state.events, state.attendance),
        )

    def pledge_class_points(self, state: AnalyticsState) -> list[GroupPointsSummary]:
        return self._memo(
            state,
            ("pledge_classes",),
            lambda: compute_pledge_class_points(state.members, state.events, state.attendance),
        )

    def diversity(self, state: AnalyticsState, today: Optional[date] = None) -> DiversityMetrics:
        today = today or date.today()
        limit = self.settings.major_distribution_limit
        return self._memo(
            state,
            ("diversity", today, limit),
            lambda: compute_diversity_metrics(state.members, today=today, major_limit=limit),
        )

    def member_category_points(self, state: AnalyticsState, user_id: str) -> MemberCategoryPoints:
        return self._memo(
            state,
            ("member_categories", user_id),
            lambda: compute_member_category_points(
                user_id,
                state.events,
                state.attendance,
                requirements=self.settings.point_requirements,
            ),
        )

    def semester_report(
        self,
        state: AnalyticsState,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> SemesterReport:
        """Semester report; the window defaults to the state's date range."""
        start = start or state.date_range.start
        end = end or state.date_range.end
        return self._memo(
            state,
            ("semester_report", start, end),
            lambda: build_semester_report(
                state.members, state.events, state.attendance, start, end
            ),
        )
