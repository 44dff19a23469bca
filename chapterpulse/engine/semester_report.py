"""
Semester Report Generator.

Condenses one semester window of loaded records into the end-of-term summary
officers present: event output per category, point distribution, top and
struggling members, officer event output, and retention signals.

Only brothers and officers are reported on. Attendance is deduplicated and
restricted to those members and to events starting inside the window, so
every count in the report refers to the same population.
"""

from datetime import datetime
from typing import Sequence

import structlog

from chapterpulse.engine.categories import normalize_category
from chapterpulse.engine.lookups import bounded_rate, dedupe_attendance
from chapterpulse.models.enums import MemberRole
from chapterpulse.models.records import AttendanceRecord, DateRange, Event, Member
from chapterpulse.models.report import (
    CategoryPerformance,
    EventHighlight,
    OfficerStats,
    PerformerSummary,
    PointEarner,
    PointSystemHealth,
    RetentionSignals,
    SemesterReport,
)

logger = structlog.get_logger()

REPORTED_ROLES = frozenset({MemberRole.BROTHER.value, MemberRole.OFFICER.value})

TOP_PERFORMER_LIMIT = 10
RETENTION_LIST_LIMIT = 10

# Fractions of the chapter point average
ON_TRACK_RATIO = 0.7
STRUGGLING_RATIO = 0.5
AT_RISK_POINTS_RATIO = 0.5
HIGH_ENGAGEMENT_POINTS_RATIO = 1.2

# Attendance-rate thresholds, percent
AT_RISK_ATTENDANCE_RATE = 50.0
LOW_ATTENDANCE_RATE = 50.0
HIGH_ENGAGEMENT_ATTENDANCE_RATE = 80.0


def build_semester_report(
    members: Sequence[Member],
    events: Sequence[Event],
    attendance: Sequence[AttendanceRecord],
    start: datetime,
    end: datetime,
) -> SemesterReport:
    """
    Build the semester report for [start, end].

    Args:
        members: Loaded members (non brothers/officers are ignored)
        events: Loaded events (those starting outside the window are ignored)
        attendance: Raw attendance rows
        start: Window start, inclusive
        end: Window end, inclusive

    Returns:
        SemesterReport

    Raises:
        ValueError: If end is before start
    """
    window = DateRange(start=start, end=end)

    roster = [m for m in members if m.role in REPORTED_ROLES]
    roster_ids = {m.user_id for m in roster}
    window_events = [e for e in events if window.contains(e.start_time)]
    event_by_id: dict[str, Event] = {}
    for event in window_events:
        event_by_id.setdefault(event.id, event)

    attended = [
        r
        for r in dedupe_attendance(attendance, user_ids=roster_ids)
        if r.attended and r.event_id in event_by_id
    ]

    total_members = len(roster)
    total_events = len(window_events)
    total_attendance = len(attended)

    # -- Per-member and per-event tallies --------------------------------
    member_points: dict[str, float] = {}
    member_events: dict[str, int] = {}
    event_counts: dict[str, int] = {}
    points_by_category: dict[str, float] = {}
    category_members: dict[str, set[str]] = {}

    for record in attended:
        event = event_by_id[record.event_id]
        category = normalize_category(event.point_type)
        member_points[record.user_id] = member_points.get(record.user_id, 0.0) + event.point_value
        member_events[record.user_id] = member_events.get(record.user_id, 0) + 1
        event_counts[event.id] = event_counts.get(event.id, 0) + 1
        points_by_category[category] = points_by_category.get(category, 0.0) + event.point_value
        if event.point_value > 0:
            category_members.setdefault(category, set()).add(record.user_id)

    events_by_category: dict[str, int] = {}
    for event in window_events:
        category = normalize_category(event.point_type)
        events_by_category[category] = events_by_category.get(category, 0) + 1

    total_points_awarded = sum(member_points.values())
    average_points = total_points_awarded / total_members if total_members else 0.0

    # -- Event highlights ------------------------------------------------
    most_attended = None
    least_attended = None
    for event in window_events:
        count = event_counts.get(event.id, 0)
        if count > 0 and (most_attended is None or count > most_attended.attendance):
            most_attended = EventHighlight(name=event.title, attendance=count)
        if least_attended is None or count < least_attended.attendance:
            least_attended = EventHighlight(name=event.title, attendance=count)

    # -- Member summaries ------------------------------------------------
    summaries = [
        PerformerSummary(
            name=m.display_name,
            points=member_points.get(m.user_id, 0.0),
            attendance_rate=bounded_rate(member_events.get(m.user_id, 0), total_events),
        )
        for m in roster
    ]

    highest_point_earner = None
    for summary in summaries:
        if summary.points > 0 and (
            highest_point_earner is None or summary.points > highest_point_earner.points
        ):
            highest_point_earner = PointEarner(name=summary.name, points=summary.points)

    top_performers = sorted(summaries, key=lambda s: s.points, reverse=True)[:TOP_PERFORMER_LIMIT]

    perfect_attendance: list[str] = []
    low_attendance: list[str] = []
    for summary in summaries:
        if total_events > 0 and summary.attendance_rate >= 100:
            perfect_attendance.append(summary.name)
        elif summary.attendance_rate < LOW_ATTENDANCE_RATE:
            low_attendance.append(summary.name)

    # -- Officers --------------------------------------------------------
    officer_stats = []
    for officer in roster:
        if officer.role != MemberRole.OFFICER.value or not officer.officer_position:
            continue
        created = [e for e in window_events if e.creator_id == officer.user_id]
        if not created:
            continue
        officer_stats.append(
            OfficerStats(
                position=officer.officer_position,
                name=officer.display_name,
                events_created=len(created),
                avg_event_attendance=sum(event_counts.get(e.id, 0) for e in created) / len(created),
            )
        )

    # -- Categories ------------------------------------------------------
    attendance_by_category: dict[str, int] = {}
    for event in window_events:
        category = normalize_category(event.point_type)
        attendance_by_category[category] = (
            attendance_by_category.get(category, 0) + event_counts.get(event.id, 0)
        )

    category_performance = [
        CategoryPerformance(
            category=category,
            events_held=held,
            avg_attendance=attendance_by_category.get(category, 0) / held,
            points_distributed=points_by_category.get(category, 0.0),
            participation_rate=bounded_rate(
                len(category_members.get(category, ())), total_members
            ),
        )
        for category, held in events_by_category.items()
    ]

    # -- Retention -------------------------------------------------------
    at_risk = sorted(
        (
            s
            for s in summaries
            if s.points < average_points * AT_RISK_POINTS_RATIO
            or s.attendance_rate < AT_RISK_ATTENDANCE_RATE
        ),
        key=lambda s: s.points,
    )[:RETENTION_LIST_LIMIT]

    high_engagement = [
        s.name
        for s in sorted(summaries, key=lambda s: s.points, reverse=True)
        if s.attendance_rate > HIGH_ENGAGEMENT_ATTENDANCE_RATE
        and s.points > average_points * HIGH_ENGAGEMENT_POINTS_RATIO
    ][:RETENTION_LIST_LIMIT]

    retention = RetentionSignals(
        at_risk_members=at_risk,
        inactive_members=[m.display_name for m in roster if member_events.get(m.user_id, 0) == 0],
        high_engagement_members=high_engagement,
        average_events_per_member=total_attendance / total_members if total_members else 0.0,
    )

    # -- Point system health ---------------------------------------------
    below_average = [s.points for s in summaries if s.points < average_points]
    point_system = PointSystemHealth(
        average_points_gap=(
            sum(average_points - p for p in below_average) / len(below_average)
            if below_average
            else 0.0
        ),
        members_on_track=sum(1 for s in summaries if s.points >= average_points * ON_TRACK_RATIO),
        members_struggling=sum(
            1 for s in summaries if s.points < average_points * STRUGGLING_RATIO
        ),
        category_balance={
            category: (points / total_points_awarded * 100 if total_points_awarded else 0.0)
            for category, points in points_by_category.items()
        },
    )

    report = SemesterReport(
        semester_start=window.start,
        semester_end=window.end,
        total_members=total_members,
        active_members=sum(1 for m in roster if member_events.get(m.user_id, 0) > 0),
        total_events=total_events,
        events_by_category=events_by_category,
        total_attendance=total_attendance,
        average_attendance=total_attendance / total_events if total_events else 0.0,
        most_attended_event=most_attended,
        least_attended_event=least_attended,
        average_points_per_member=average_points,
        highest_point_earner=highest_point_earner,
        total_points_awarded=total_points_awarded,
        points_by_category=points_by_category,
        top_performers=top_performers,
        overall_attendance_rate=bounded_rate(total_attendance, total_events * total_members),
        perfect_attendance=perfect_attendance,
        low_attendance=low_attendance,
        officer_stats=officer_stats,
        category_performance=category_performance,
        retention=retention,
        point_system=point_system,
    )

    logger.info(
        "semester_report_built",
        semester_start=window.start.isoformat(),
        semester_end=window.end.isoformat(),
        members=total_members,
        events=total_events,
        attendance=total_attendance,
    )
    return report
