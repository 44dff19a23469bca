"""
Load Coordinator — async shell around the analytics reducer.

Drives the dependent load chain members → events → attendance against a
DataSource. Each resource kind has at most one request in flight: starting a
new fetch cancels the previous task for that kind and bumps the kind's
generation token, and a result (or failure) is committed only while its token
is still current. Data source failures become an error state; they never
propagate to the caller. A cancelled caller settles the state before its
cancellation propagates.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from chapterpulse.config import Settings, get_settings
from chapterpulse.connectors.base import DataSource
from chapterpulse.engine.coordinator.state import (
    Action,
    AnalyticsState,
    CancelLoading,
    LoadMoreEvents,
    LoadMoreMembers,
    Refresh,
    SetAttendance,
    SetDateRange,
    SetError,
    SetEvents,
    SetMembers,
    SetMembersPage,
    SetMetric,
    StartLoading,
    initial_state,
    reduce,
)
from chapterpulse.engine.lookups import ids_of
from chapterpulse.models.enums import LoadStage, ResourceKind, SelectedMetric
from chapterpulse.models.records import DateRange

logger = structlog.get_logger()

Listener = Callable[[AnalyticsState], None]

# Marks a fetch whose outcome must not be committed
_DISCARDED = object()


class LoadCoordinator:
    """
    Owns the AnalyticsState and sequences fetches against a data source.

    Usage:
        >>> coordinator = LoadCoordinator(MemorySource(members, events, attendance))
        >>> await coordinator.load_members()
        >>> coordinator.state.stage
        <LoadStage.IDLE: 'idle'>
    """

    def __init__(self, source: DataSource, settings: Optional[Settings] = None, now=None):
        self.source = source
        self.settings = settings or get_settings()
        self._state = initial_state(self.settings, now=now)
        self._tasks: dict[ResourceKind, asyncio.Task] = {}
        self._generations: dict[ResourceKind, int] = {kind: 0 for kind in ResourceKind}
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AnalyticsState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with the new state after every transition.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> AnalyticsState:
        """Apply an action and notify listeners."""
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    # =========================================================================
    # Load chain
    # =========================================================================

    async def load_members(self, page: Optional[int] = None) -> None:
        """
        Load a page of members, then the events and attendance that depend on it.

        Args:
            page: Page to load; the current members page when omitted

        Raises:
            ValueError: If page is negative
        """
        if page is not None:
            self.dispatch(SetMembersPage(page=page))

        self.dispatch(StartLoading(stage=LoadStage.MEMBERS))
        pagination = self._state.members_pagination

        result = await self._fetch(
            ResourceKind.MEMBERS,
            lambda: self.source.fetch_members(pagination.page, pagination.page_size),
        )
        if result is _DISCARDED:
            return

        has_more = pagination.page * pagination.page_size + len(result.rows) < result.total_count
        self.dispatch(SetMembers(members=tuple(result.rows), has_more=has_more))
        logger.info(
            "members_loaded",
            page=pagination.page,
            rows=len(result.rows),
            total=result.total_count,
            has_more=has_more,
        )

        if self._state.members:
            await self.load_events()

    async def load_events(self) -> None:
        """Load the current events page for the date range, then its attendance."""
        if not self._state.members:
            return

        self.dispatch(StartLoading(stage=LoadStage.EVENTS))
        pagination = self._state.events_pagination
        date_range = self._state.date_range

        result = await self._fetch(
            ResourceKind.EVENTS,
            lambda: self.source.fetch_events(pagination.page, pagination.page_size, date_range),
        )
        if result is _DISCARDED:
            return

        in_range = tuple(e for e in result.rows if date_range.contains(e.start_time))
        has_more = pagination.page * pagination.page_size + len(result.rows) < result.total_count
        self.dispatch(SetEvents(events=in_range, has_more=has_more))
        logger.info(
            "events_loaded",
            page=pagination.page,
            rows=len(in_range),
            dropped_out_of_range=len(result.rows) - len(in_range),
            total=result.total_count,
            has_more=has_more,
        )

        await self.load_attendance()

    async def load_attendance(self) -> None:
        """Load attendance for exactly the loaded events."""
        events = self._state.events
        if not events:
            self._cancel(ResourceKind.ATTENDANCE)
            self.dispatch(SetAttendance(records=()))
            return

        self.dispatch(StartLoading(stage=LoadStage.ATTENDANCE))
        event_ids = ids_of(events)

        result = await self._fetch(
            ResourceKind.ATTENDANCE,
            lambda: self.source.fetch_attendance(event_ids),
        )
        if result is _DISCARDED:
            return

        wanted = set(event_ids)
        records = tuple(r for r in result if r.event_id in wanted)
        self.dispatch(SetAttendance(records=records))
        logger.info("attendance_loaded", events=len(event_ids), rows=len(records))

    # =========================================================================
    # User actions
    # =========================================================================

    async def refresh(self) -> None:
        """Drop everything loaded and reload from the first members page."""
        for kind in ResourceKind:
            self._cancel(kind)
        self.dispatch(Refresh())
        logger.info("analytics_refresh_started")
        await self.load_members(0)

    async def load_more_events(self) -> bool:
        """
        Advance to the next events page.

        Returns:
            False, without issuing any request, when there is nothing more to
            load or a load is already in progress
        """
        if not self._state.events_pagination.has_more or self._state.loading:
            logger.debug(
                "load_more_skipped",
                kind=ResourceKind.EVENTS.value,
                has_more=self._state.events_pagination.has_more,
                loading=self._state.loading,
            )
            return False
        self.dispatch(LoadMoreEvents())
        await self.load_events()
        return True

    async def load_more_members(self) -> bool:
        """Advance to the next members page; same guard as ``load_more_events``."""
        if not self._state.members_pagination.has_more or self._state.loading:
            logger.debug(
                "load_more_skipped",
                kind=ResourceKind.MEMBERS.value,
                has_more=self._state.members_pagination.has_more,
                loading=self._state.loading,
            )
            return False
        self.dispatch(LoadMoreMembers())
        await self.load_members()
        return True

    async def set_date_range(self, date_range: DateRange) -> None:
        """Switch the event window and reload events from its first page."""
        self.dispatch(SetDateRange(date_range=date_range))
        logger.info(
            "date_range_changed",
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
        )
        await self.load_events()

    def set_selected_metric(self, metric: SelectedMetric) -> AnalyticsState:
        return self.dispatch(SetMetric(metric=metric))

    # =========================================================================
    # Fetch bookkeeping
    # =========================================================================

    def _cancel(self, kind: ResourceKind) -> None:
        """Invalidate the current generation of a kind and cancel its task."""
        self._generations[kind] += 1
        task = self._tasks.pop(kind, None)
        if task is not None and not task.done():
            task.cancel()

    async def _fetch(self, kind: ResourceKind, request: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run one fetch as the only in-flight request of its kind.

        Returns:
            The fetched value, or ``_DISCARDED`` when the fetch failed (after
            recording the error) or was superseded
        """
        self._cancel(kind)
        generation = self._generations[kind]
        task = asyncio.ensure_future(request())
        self._tasks[kind] = task

        try:
            result = await task
        except asyncio.CancelledError:
            if self._generations[kind] != generation:
                logger.debug("fetch_superseded", kind=kind.value)
                return _DISCARDED
            logger.info("load_cancelled", kind=kind.value)
            self.dispatch(CancelLoading())
            raise
        except Exception as e:
            if self._generations[kind] != generation:
                logger.debug("superseded_fetch_failed", kind=kind.value, error=str(e))
                return _DISCARDED
            logger.error("fetch_failed", kind=kind.value, error=str(e), error_type=type(e).__name__)
            self.dispatch(SetError(message=f"Failed to load {kind.value}: {e}"))
            return _DISCARDED
        finally:
            if self._tasks.get(kind) is task:
                del self._tasks[kind]

        if self._generations[kind] != generation:
            logger.debug("fetch_superseded", kind=kind.value)
            return _DISCARDED
        return result
