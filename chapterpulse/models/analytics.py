"""
Derived analytics views.

Every model here is recomputed from the currently loaded members, events and
attendance; none of them is persisted. Rates and percentages are on a 0-100
scale and are 0 whenever their denominator is 0.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthMetrics(BaseModel):
    """
    Chapter-wide health summary.

    Attributes:
        total_members: Number of loaded members
        active_members: Loaded members whose role is not "inactive"
        retention_rate: active_members / total_members * 100
        avg_attendance_rate: Attended (brother, event) pairs over active brothers x events
        avg_points: Mean points per active brother, zero-attendance brothers included
    """

    total_members: int = Field(default=0, ge=0, description="Number of loaded members")
    active_members: int = Field(default=0, ge=0, description="Members not marked inactive")
    retention_rate: float = Field(default=0.0, ge=0, le=100, description="Active share of members")
    avg_attendance_rate: float = Field(
        default=0.0, ge=0, le=100, description="Active-brother attendance rate"
    )
    avg_points: float = Field(default=0.0, ge=0, description="Mean points per active brother")


class MemberPerformance(BaseModel):
    """Leaderboard row for a single brother."""

    user_id: str
    name: str
    pledge_class: Optional[str] = None
    points: float = Field(ge=0, description="Points from deduplicated attended events")
    events_attended: int = Field(ge=0, description="Distinct events attended")
    attendance_rate: float = Field(ge=0, le=100, description="Events attended / loaded events")


class EventAnalytics(BaseModel):
    """Attendance statistics for one loaded event."""

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    point_value: float = Field(ge=0)
    point_type: str
    attendance_count: int = Field(ge=0, description="Distinct members who attended")
    attendance_rate: float = Field(ge=0, le=100, description="Attendance vs active brothers")
    rsvp_count: int = Field(ge=0, description="Distinct members who RSVP'd")
    no_show_rate: float = Field(ge=0, le=100, description="RSVPs that did not turn into attendance")
    top_attendees: list[str] = Field(default_factory=list, description="First attendees' names")
    creator: str = Field(description="Display name of the event creator")


class CategoryPointsBreakdown(BaseModel):
    """Point totals for one (normalized) event category."""

    category: str
    total_points: float = Field(ge=0)
    event_count: int = Field(ge=0)
    attendance_count: int = Field(ge=0, description="Unique attended (member, event) pairs")
    average_points: float = Field(ge=0, description="total_points / attendance_count")
    average_attendance_per_member: float = Field(
        default=0.0, ge=0, description="attendance_count / loaded members"
    )


class GroupPointsSummary(BaseModel):
    """Points rolled up over a member grouping (house or pledge class)."""

    group: str
    total_points: float = Field(ge=0)
    member_count: int = Field(ge=0)
    avg_points_per_member: float = Field(ge=0)


class CategoryRequirementProgress(BaseModel):
    """A member's standing against one category's point requirement."""

    category: str
    points: float = Field(ge=0)
    required: float = Field(ge=0)
    met: bool
    progress_pct: float = Field(ge=0, le=100, description="Share of the requirement earned, capped at 100")


class MemberCategoryPoints(BaseModel):
    """
    One member's points split across the canonical categories, with progress
    toward each category's requirement. ``pillars_met`` counts the
    categories whose requirement is met.
    """

    user_id: str
    points_by_category: dict[str, float]
    total_points: float = Field(ge=0)
    requirements: list[CategoryRequirementProgress]
    pillars_met: int = Field(ge=0)
    all_requirements_met: bool


class DistributionEntry(BaseModel):
    """One bucket of a demographic distribution."""

    label: str
    count: int = Field(ge=0)
    percentage: float = Field(ge=0, le=100)


class DiversityMetrics(BaseModel):
    """
    Demographic distributions, the composite diversity score and insights.

    ``dimension_scores`` holds the per-dimension Simpson indices that feed the
    weighted ``diversity_score``.
    """

    gender_distribution: list[DistributionEntry] = Field(default_factory=list)
    pronoun_distribution: list[DistributionEntry] = Field(default_factory=list)
    race_distribution: list[DistributionEntry] = Field(default_factory=list)
    sexual_orientation_distribution: list[DistributionEntry] = Field(default_factory=list)
    major_distribution: list[DistributionEntry] = Field(default_factory=list)
    living_type_distribution: list[DistributionEntry] = Field(default_factory=list)
    house_membership_distribution: list[DistributionEntry] = Field(default_factory=list)
    graduation_year_distribution: list[DistributionEntry] = Field(default_factory=list)
    pledge_class_distribution: list[DistributionEntry] = Field(default_factory=list)
    diversity_score: float = Field(default=0.0, ge=0, le=100)
    dimension_scores: dict[str, float] = Field(default_factory=dict)
    insights: list[str] = Field(default_factory=list)
