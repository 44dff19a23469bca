"""
Analytics state and its pure transition function.

``AnalyticsState`` is immutable; every change goes through ``reduce`` with one
of the action models below and produces a new state. Unchanged collections are
carried over by reference (``model_copy``), so derived-view caches keyed on
their identity stay valid across unrelated transitions.

Stage machine:
    idle → members → events → attendance → idle
    any stage → error (data kept); refresh → members
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from chapterpulse.config import Settings, get_settings
from chapterpulse.models.enums import LoadStage, SelectedMetric
from chapterpulse.models.records import AttendanceRecord, DateRange, Event, Member

_FROZEN = ConfigDict(frozen=True)


class Pagination(BaseModel):
    """Cursor for one paginated resource."""

    model_config = _FROZEN

    page: int = Field(default=0, ge=0, description="Zero-based page index")
    page_size: int = Field(ge=1, description="Rows per page")
    has_more: bool = Field(default=True, description="More rows exist beyond this page")


class AnalyticsState(BaseModel):
    """
    Everything the dashboard renders from.

    Attributes:
        members: Current member page
        events: Current event page, filtered to ``date_range``
        attendance: Rows for exactly the loaded events
        loading: A load chain is in progress
        refreshing: The in-progress chain was started by a refresh
        error: Last failure message; loaded data is kept alongside it
        stage: Position in the load chain
        date_range: Window applied to event start times
        selected_metric: Dashboard tab
    """

    model_config = _FROZEN

    members: tuple[Member, ...] = ()
    events: tuple[Event, ...] = ()
    attendance: tuple[AttendanceRecord, ...] = ()
    members_pagination: Pagination
    events_pagination: Pagination
    loading: bool = False
    refreshing: bool = False
    error: Optional[str] = None
    stage: LoadStage = LoadStage.IDLE
    date_range: DateRange
    selected_metric: SelectedMetric = SelectedMetric.OVERVIEW


def initial_state(settings: Optional[Settings] = None, now: Optional[datetime] = None) -> AnalyticsState:
    """Empty state with configured page sizes and a trailing default window."""
    settings = settings or get_settings()
    return AnalyticsState(
        members_pagination=Pagination(page_size=settings.members_page_size),
        events_pagination=Pagination(page_size=settings.events_page_size),
        date_range=DateRange.trailing_months(settings.default_range_months, now=now),
    )


# =============================================================================
# Actions
# =============================================================================


class StartLoading(BaseModel):
    model_config = _FROZEN

    stage: LoadStage


class SetRefreshing(BaseModel):
    model_config = _FROZEN

    refreshing: bool


class SetError(BaseModel):
    model_config = _FROZEN

    message: str


class SetMembers(BaseModel):
    model_config = _FROZEN

    members: tuple[Member, ...]
    has_more: bool


class SetEvents(BaseModel):
    model_config = _FROZEN

    events: tuple[Event, ...]
    has_more: bool


class SetAttendance(BaseModel):
    model_config = _FROZEN

    records: tuple[AttendanceRecord, ...]


class LoadMoreMembers(BaseModel):
    model_config = _FROZEN


class LoadMoreEvents(BaseModel):
    model_config = _FROZEN


class SetMembersPage(BaseModel):
    model_config = _FROZEN

    page: int = Field(ge=0)


class SetDateRange(BaseModel):
    model_config = _FROZEN

    date_range: DateRange


class SetMetric(BaseModel):
    model_config = _FROZEN

    metric: SelectedMetric


class Refresh(BaseModel):
    model_config = _FROZEN


class CancelLoading(BaseModel):
    """The caller of an in-progress load went away; settle without an error."""

    model_config = _FROZEN


Action = Union[
    StartLoading,
    SetRefreshing,
    SetError,
    SetMembers,
    SetEvents,
    SetAttendance,
    LoadMoreMembers,
    LoadMoreEvents,
    SetMembersPage,
    SetDateRange,
    SetMetric,
    Refresh,
    CancelLoading,
]


# =============================================================================
# Transition
# =============================================================================

_SETTLED = {"stage": LoadStage.IDLE, "loading": False, "refreshing": False}


def reduce(state: AnalyticsState, action: Action) -> AnalyticsState:
    """
    Apply one action to a state.

    Pure: no I/O, no clock reads, and the input state is never mutated.

    Raises:
        TypeError: For an object that is not a known action
    """
    if isinstance(action, StartLoading):
        return state.model_copy(update={"stage": action.stage, "loading": True, "error": None})

    if isinstance(action, SetRefreshing):
        return state.model_copy(update={"refreshing": action.refreshing})

    if isinstance(action, SetError):
        return state.model_copy(
            update={
                "error": action.message,
                "stage": LoadStage.ERROR,
                "loading": False,
                "refreshing": False,
            }
        )

    if isinstance(action, SetMembers):
        update = {
            "members": action.members,
            "members_pagination": state.members_pagination.model_copy(
                update={"has_more": action.has_more}
            ),
        }
        if action.members:
            update["stage"] = LoadStage.EVENTS
        else:
            update.update(_SETTLED)
        return state.model_copy(update=update)

    if isinstance(action, SetEvents):
        update = {
            "events": action.events,
            "events_pagination": state.events_pagination.model_copy(
                update={"has_more": action.has_more}
            ),
        }
        if action.events:
            update["stage"] = LoadStage.ATTENDANCE
        else:
            # No displayed events means no attendance belongs to the view
            update["attendance"] = ()
            update.update(_SETTLED)
        return state.model_copy(update=update)

    if isinstance(action, SetAttendance):
        return state.model_copy(update={"attendance": action.records, **_SETTLED})

    if isinstance(action, LoadMoreMembers):
        pagination = state.members_pagination
        return state.model_copy(
            update={"members_pagination": pagination.model_copy(update={"page": pagination.page + 1})}
        )

    if isinstance(action, LoadMoreEvents):
        pagination = state.events_pagination
        return state.model_copy(
            update={"events_pagination": pagination.model_copy(update={"page": pagination.page + 1})}
        )

    if isinstance(action, SetMembersPage):
        return state.model_copy(
            update={
                "members_pagination": state.members_pagination.model_copy(
                    update={"page": action.page}
                )
            }
        )

    if isinstance(action, SetDateRange):
        return state.model_copy(
            update={
                "date_range": action.date_range,
                "events_pagination": state.events_pagination.model_copy(
                    update={"page": 0, "has_more": True}
                ),
            }
        )

    if isinstance(action, SetMetric):
        return state.model_copy(update={"selected_metric": action.metric})

    if isinstance(action, CancelLoading):
        return state.model_copy(update=_SETTLED)

    if isinstance(action, Refresh):
        return state.model_copy(
            update={
                "members": (),
                "events": (),
                "attendance": (),
                "members_pagination": Pagination(page_size=state.members_pagination.page_size),
                "events_pagination": Pagination(page_size=state.events_pagination.page_size),
                "refreshing": True,
                "error": None,
            }
        )

    raise TypeError(f"Unknown action: {type(action).__name__}")
