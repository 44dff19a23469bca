"""
End-of-semester report models.

The report condenses the loaded window into the figures officers present at the
close of a semester: membership and event totals, point distribution, officer
output, and retention signals.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EventHighlight(BaseModel):
    """An event singled out by its attendance."""

    name: str
    attendance: int = Field(ge=0)


class PointEarner(BaseModel):
    """A member singled out by points."""

    name: str
    points: float = Field(ge=0)


class PerformerSummary(BaseModel):
    """Points and attendance rate for one member."""

    name: str
    points: float = Field(ge=0)
    attendance_rate: float = Field(ge=0, le=100)


class OfficerStats(BaseModel):
    """Events created by an officer and how well they drew."""

    position: str
    name: str
    events_created: int = Field(ge=0)
    avg_event_attendance: float = Field(ge=0)


class CategoryPerformance(BaseModel):
    """Per-category event output."""

    category: str
    events_held: int = Field(ge=0)
    avg_attendance: float = Field(ge=0)
    points_distributed: float = Field(ge=0)
    participation_rate: float = Field(
        ge=0, le=100, description="Members with points in this category / members"
    )


class RetentionSignals(BaseModel):
    """Who is drifting away and who is carrying the chapter."""

    at_risk_members: list[PerformerSummary] = Field(default_factory=list)
    inactive_members: list[str] = Field(default_factory=list)
    high_engagement_members: list[str] = Field(default_factory=list)
    average_events_per_member: float = Field(default=0.0, ge=0)


class PointSystemHealth(BaseModel):
    """Spread of points around the chapter average."""

    average_points_gap: float = Field(default=0.0, ge=0)
    members_on_track: int = Field(default=0, ge=0)
    members_struggling: int = Field(default=0, ge=0)
    category_balance: dict[str, float] = Field(default_factory=dict)


class SemesterReport(BaseModel):
    """
    Semester summary built from the loaded members, events and attendance.

    Attributes:
        semester_start: Window start
        semester_end: Window end
        total_members: Members considered (brothers and officers)
        events_by_category: Event counts keyed by normalized category
        total_attendance: Unique attended (member, event) pairs
        overall_attendance_rate: total_attendance / (events x members) * 100
    """

    semester_start: datetime
    semester_end: datetime

    total_members: int = Field(ge=0)
    active_members: int = Field(ge=0)

    total_events: int = Field(ge=0)
    events_by_category: dict[str, int] = Field(default_factory=dict)
    total_attendance: int = Field(ge=0)
    average_attendance: float = Field(ge=0)
    most_attended_event: Optional[EventHighlight] = None
    least_attended_event: Optional[EventHighlight] = None

    average_points_per_member: float = Field(ge=0)
    highest_point_earner: Optional[PointEarner] = None
    total_points_awarded: float = Field(ge=0)
    points_by_category: dict[str, float] = Field(default_factory=dict)

    top_performers: list[PerformerSummary] = Field(default_factory=list)
    overall_attendance_rate: float = Field(ge=0, le=100)
    perfect_attendance: list[str] = Field(default_factory=list)
    low_attendance: list[str] = Field(default_factory=list)

    officer_stats: list[OfficerStats] = Field(default_factory=list)
    category_performance: list[CategoryPerformance] = Field(default_factory=list)

    retention: RetentionSignals = Field(default_factory=RetentionSignals)
    point_system: PointSystemHealth = Field(default_factory=PointSystemHealth)
