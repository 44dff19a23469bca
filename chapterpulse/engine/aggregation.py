"""
Aggregation Engine — derived dashboard views from raw chapter records.

Every function here is pure: it reads the member, event and attendance
sequences it is given and returns a fresh view, so results can be memoized on
the identity of the inputs. Attendance is always deduplicated to one row per
(member, event) before anything is counted or summed, and rows that reference
an event that is not loaded are skipped rather than treated as errors (with
paginated loading, not every reference resolves locally).

Version: aggregation_v1
"""

from typing import Callable, Iterable, Mapping, Optional, Sequence

import structlog

from chapterpulse.config import DEFAULT_POINT_REQUIREMENTS
from chapterpulse.engine.categories import CANONICAL_CATEGORIES, normalize_category
from chapterpulse.engine.lookups import (
    active_brothers,
    bounded_rate,
    build_event_lookup,
    build_member_lookup,
    dedupe_attendance,
    display_name_for,
    safe_rate,
)
from chapterpulse.models.analytics import (
    CategoryPointsBreakdown,
    CategoryRequirementProgress,
    EventAnalytics,
    GroupPointsSummary,
    HealthMetrics,
    MemberCategoryPoints,
    MemberPerformance,
)
from chapterpulse.models.enums import MemberRole
from chapterpulse.models.records import AttendanceRecord, Event, Member

logger = structlog.get_logger()

HOUSE_FALLBACK = "Not Specified"
PLEDGE_CLASS_FALLBACK = "Unknown"


def _attended_rows(
    attendance: Iterable[AttendanceRecord],
    event_lookup: dict[str, Event],
    user_ids: Optional[Iterable[str]] = None,
) -> list[tuple[AttendanceRecord, Event]]:
    """Deduplicated attended rows joined to their (loaded) event."""
    joined = []
    for record in dedupe_attendance(attendance, user_ids=user_ids):
        if not record.attended:
            continue
        event = event_lookup.get(record.event_id)
        if event is None:
            continue
        joined.append((record, event))
    return joined


def compute_member_points(
    attendance: Iterable[AttendanceRecord],
    events: Iterable[Event],
    user_ids: Optional[Iterable[str]] = None,
) -> dict[str, float]:
    """
    Points per member from deduplicated attended events.

    Args:
        attendance: Raw attendance rows
        events: Loaded events (point values come from here)
        user_ids: Restrict the computation to these members

    Returns:
        Map of user_id → points; members with no attended events are absent
    """
    points: dict[str, float] = {}
    for record, event in _attended_rows(attendance, build_event_lookup(events), user_ids):
        points[record.user_id] = points.get(record.user_id, 0.0) + event.point_value
    return points


# =============================================================================
# Health metrics
# =============================================================================


def compute_health_metrics(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
) -> HealthMetrics:
    """
    Chapter health summary.

    ``retention_rate`` is measured over all loaded members. Attendance and
    points are measured over active brothers only: attendance rows are
    restricted to active-brother ids before deduplication, and brothers who
    attended nothing still count toward the point average.

    Example:
        >>> compute_health_metrics([], [], [])
        HealthMetrics(total_members=0, active_members=0, retention_rate=0.0, ...)
    """
    if not members:
        return HealthMetrics()

    total_members = len(members)
    active_members = sum(1 for m in members if m.role != MemberRole.INACTIVE.value)

    brother_ids = {b.user_id for b in active_brothers(members)}
    event_lookup = build_event_lookup(events)
    attended = _attended_rows(attendance, event_lookup, user_ids=brother_ids)

    avg_attendance_rate = safe_rate(len(attended), len(brother_ids) * len(event_lookup))

    brother_points: dict[str, float] = {}
    for record, event in attended:
        brother_points[record.user_id] = brother_points.get(record.user_id, 0.0) + event.point_value
    total_points = sum(brother_points.get(uid, 0.0) for uid in brother_ids)
    avg_points = total_points / len(brother_ids) if brother_ids else 0.0

    metrics = HealthMetrics(
        total_members=total_members,
        active_members=active_members,
        retention_rate=safe_rate(active_members, total_members),
        avg_attendance_rate=avg_attendance_rate,
        avg_points=avg_points,
    )

    logger.debug(
        "health_metrics_computed",
        total_members=total_members,
        active_brothers=len(brother_ids),
        events=len(event_lookup),
        attended_pairs=len(attended),
    )
    return metrics


# =============================================================================
# Leaderboard
# =============================================================================


def compute_member_performance(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
    limit: int = 10,
) -> list[MemberPerformance]:
    """
    Top-N brothers by points.

    Only members whose role is exactly "brother" are ranked. Rows are
    filtered to attended ones before deduplication, so a pair whose first row
    is a no-show still counts when a later row marks it attended. Ties keep
    the order in which members first appear in the attendance rows.

    Args:
        members: Loaded members
        events: Loaded events
        attendance: Raw attendance rows
        limit: Maximum rows returned

    Returns:
        Leaderboard rows sorted by points, descending

    Raises:
        ValueError: If limit is negative
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    member_lookup = build_member_lookup(members)
    event_lookup = build_event_lookup(events)
    total_events = len(event_lookup)

    stats: dict[str, dict] = {}
    attended = (r for r in attendance if r.attended)
    for record, event in _attended_rows(attended, event_lookup):
        entry = stats.setdefault(record.user_id, {"points": 0.0, "events": 0})
        entry["points"] += event.point_value
        entry["events"] += 1

    performance = []
    for user_id, entry in stats.items():
        member = member_lookup.get(user_id)
        if member is None or member.role != MemberRole.BROTHER.value:
            continue
        performance.append(
            MemberPerformance(
                user_id=user_id,
                name=member.display_name,
                pledge_class=member.pledge_class,
                points=entry["points"],
                events_attended=entry["events"],
                attendance_rate=bounded_rate(entry["events"], total_events),
            )
        )

    performance.sort(key=lambda row: row.points, reverse=True)
    return performance[:limit]


# =============================================================================
# Per-event analytics
# =============================================================================


def compute_event_analytics(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
    top_attendees: int = 5,
) -> list[EventAnalytics]:
    """
    Attendance statistics for each loaded event.

    Attendance rate uses active brothers as the denominator, the same
    population as ``compute_health_metrics``. Rates are clamped to [0, 100]
    because pledges and guests can push raw counts past the brother total.
    ``attendance_count`` counts only deduplicated rows marked attended, so
    RSVP-only rows show up as no-shows.
    """
    member_lookup = build_member_lookup(members)
    total_brothers = len({b.user_id for b in active_brothers(members)})

    rows_by_event: dict[str, list[AttendanceRecord]] = {}
    for record in dedupe_attendance(attendance):
        rows_by_event.setdefault(record.event_id, []).append(record)

    analytics = []
    for event in events:
        rows = rows_by_event.get(event.id, [])
        attendees = [r for r in rows if r.attended]
        rsvp_count = sum(1 for r in rows if r.rsvp)
        attendance_count = len(attendees)

        analytics.append(
            EventAnalytics(
                id=event.id,
                title=event.title,
                start_time=event.start_time,
                end_time=event.end_time,
                point_value=event.point_value,
                point_type=event.point_type,
                attendance_count=attendance_count,
                attendance_rate=bounded_rate(attendance_count, total_brothers),
                rsvp_count=rsvp_count,
                no_show_rate=bounded_rate(rsvp_count - attendance_count, rsvp_count),
                top_attendees=[
                    display_name_for(member_lookup, r.user_id) for r in attendees[:top_attendees]
                ],
                creator=display_name_for(member_lookup, event.creator_id),
            )
        )
    return analytics


# =============================================================================
# Category breakdown
# =============================================================================


def compute_category_breakdown(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
) -> list[CategoryPointsBreakdown]:
    """
    Points and attendance per normalized event category.

    All canonical categories are seeded so their relative order is stable;
    custom labels are appended as they are first seen. Only categories with at
    least one loaded event are returned, sorted by average points per
    attendance, descending.
    """
    totals: dict[str, dict] = {
        category: {"total_points": 0.0, "event_count": 0, "pairs": set()}
        for category in CANONICAL_CATEGORIES
    }
    category_by_event: dict[str, str] = {}
    event_lookup = build_event_lookup(events)

    for event in events:
        category = normalize_category(event.point_type)
        bucket = totals.setdefault(category, {"total_points": 0.0, "event_count": 0, "pairs": set()})
        bucket["event_count"] += 1
        category_by_event.setdefault(event.id, category)

    for record, event in _attended_rows(attendance, event_lookup):
        bucket = totals[category_by_event[event.id]]
        if record.key in bucket["pairs"]:
            continue
        bucket["pairs"].add(record.key)
        bucket["total_points"] += event.point_value

    member_count = len(members)
    breakdown = []
    for category, bucket in totals.items():
        if bucket["event_count"] == 0:
            continue
        unique_attendance = len(bucket["pairs"])
        breakdown.append(
            CategoryPointsBreakdown(
                category=category,
                total_points=bucket["total_points"],
                event_count=bucket["event_count"],
                attendance_count=unique_attendance,
                average_points=(
                    bucket["total_points"] / unique_attendance if unique_attendance else 0.0
                ),
                average_attendance_per_member=(
                    unique_attendance / member_count if member_count else 0.0
                ),
            )
        )

    breakdown.sort(key=lambda row: row.average_points, reverse=True)
    return breakdown


def compute_member_category_points(
    user_id: str,
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
    requirements: Optional[Mapping[str, float]] = None,
) -> MemberCategoryPoints:
    """
    One member's points split across the canonical categories.

    Events whose label does not normalize to a canonical category do not
    contribute; they have no requirement bucket to count toward.

    Args:
        user_id: Member to report on
        events: Loaded events
        attendance: Raw attendance rows
        requirements: Required points per category; categories left out
            have no requirement. Defaults to ``DEFAULT_POINT_REQUIREMENTS``.

    Returns:
        Points per category and progress toward each requirement, in
        canonical category order
    """
    if requirements is None:
        requirements = DEFAULT_POINT_REQUIREMENTS
    points = {category: 0.0 for category in CANONICAL_CATEGORIES}
    for _, event in _attended_rows(attendance, build_event_lookup(events), user_ids=[user_id]):
        category = normalize_category(event.point_type)
        if category in points:
            points[category] += event.point_value
    progress = []
    for category, earned in points.items():
        required = float(requirements.get(category, 0.0))
        progress.append(
            CategoryRequirementProgress(
                category=category,
                points=earned,
                required=required,
                met=earned >= required,
                progress_pct=min(earned / required * 100, 100.0) if required > 0 else 100.0,
            )
        )
    pillars_met = sum(1 for row in progress if row.met)

    return MemberCategoryPoints(
        user_id=user_id,
        points_by_category=points,
        total_points=sum(points.values()),
        requirements=progress,
        pillars_met=pillars_met,
        all_requirements_met=pillars_met == len(progress),
    )


# =============================================================================
# House / pledge-class summaries
# =============================================================================


def _summarize_groups(
    members: Sequence[Member],
    member_points: dict[str, float],
    group_of: Callable[[Member], str],
) -> list[GroupPointsSummary]:
    groups: dict[str, dict] = {}
    for member in members:
        entry = groups.setdefault(group_of(member), {"total_points": 0.0, "member_count": 0})
        entry["total_points"] += member_points.get(member.user_id, 0.0)
        entry["member_count"] += 1

    return [
        GroupPointsSummary(
            group=group,
            total_points=entry["total_points"],
            member_count=entry["member_count"],
            avg_points_per_member=(
                entry["total_points"] / entry["member_count"] if entry["member_count"] else 0.0
            ),
        )
        for group, entry in groups.items()
    ]


def compute_house_points(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
) -> list[GroupPointsSummary]:
    """Points per house membership, highest total first."""
    summaries = _summarize_groups(
        members,
        compute_member_points(attendance, events),
        lambda m: m.house_membership or HOUSE_FALLBACK,
    )
    summaries.sort(key=lambda row: row.total_points, reverse=True)
    return summaries


def compute_pledge_class_points(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
) -> list[GroupPointsSummary]:
    """Points per pledge class, ordered by class label."""
    summaries = _summarize_groups(
        members,
        compute_member_points(attendance, events),
        lambda m: m.pledge_class or PLEDGE_CLASS_FALLBACK,
    )
    summaries.sort(key=lambda row: row.group)
    return summaries
