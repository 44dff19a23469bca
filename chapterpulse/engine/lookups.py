"""
Lookup builders and shared record filters.

Index builders turn the O(n·m) joins between attendance and members/events into
dict lookups. ``dedupe_attendance`` enforces the one-row-per-(member, event)
rule every aggregation depends on.
"""

from typing import Iterable, Optional, Sequence

from chapterpulse.models.enums import MemberRole
from chapterpulse.models.records import AttendanceRecord, Event, Member

BROTHER_ROLES = frozenset(
    {MemberRole.BROTHER.value, MemberRole.OFFICER.value, MemberRole.PRESIDENT.value}
)
EXCLUDED_ROLES = frozenset(
    {MemberRole.INACTIVE.value, MemberRole.ALUMNI.value, MemberRole.ABROAD.value}
)

UNKNOWN_NAME = "Unknown"


def build_member_lookup(members: Iterable[Member]) -> dict[str, Member]:
    """Index members by ``user_id``; the first record for an id wins."""
    lookup: dict[str, Member] = {}
    for member in members:
        lookup.setdefault(member.user_id, member)
    return lookup


def build_event_lookup(events: Iterable[Event]) -> dict[str, Event]:
    """Index events by ``id``; the first record for an id wins."""
    lookup: dict[str, Event] = {}
    for event in events:
        lookup.setdefault(event.id, event)
    return lookup


def is_active_brother(member: Member) -> bool:
    return member.role in BROTHER_ROLES and member.role not in EXCLUDED_ROLES


def active_brothers(members: Iterable[Member]) -> list[Member]:
    """
    Members that count toward attendance and point statistics.

    Brothers, officers and the president; never inactive, alumni or abroad.
    """
    return [m for m in members if is_active_brother(m)]


def dedupe_attendance(
    attendance: Iterable[AttendanceRecord],
    user_ids: Optional[Iterable[str]] = None,
) -> list[AttendanceRecord]:
    """
    Collapse attendance to one row per (user_id, event_id).

    The first row seen for a pair is kept and later duplicates are dropped,
    whatever their flags say. Input order is preserved, so applying this twice
    is the same as applying it once.

    Args:
        attendance: Raw attendance rows, possibly with duplicates
        user_ids: When given, only rows for these members are kept

    Returns:
        Deduplicated rows in first-seen order
    """
    allowed = set(user_ids) if user_ids is not None else None
    seen: set[tuple[str, str]] = set()
    unique: list[AttendanceRecord] = []
    for record in attendance:
        if allowed is not None and record.user_id not in allowed:
            continue
        if record.key in seen:
            continue
        seen.add(record.key)
        unique.append(record)
    return unique


def display_name_for(lookup: dict[str, Member], user_id: Optional[str]) -> str:
    member = lookup.get(user_id) if user_id else None
    if member is None or not member.display_name:
        return UNKNOWN_NAME
    return member.display_name


def safe_rate(numerator: float, denominator: float) -> float:
    """Percentage of numerator over denominator, 0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def bounded_rate(numerator: float, denominator: float) -> float:
    """``safe_rate`` clamped to [0, 100] for anomalous source data."""
    return max(0.0, min(100.0, safe_rate(numerator, denominator)))


def ids_of(events: Sequence[Event]) -> list[str]:
    return [event.id for event in events]
