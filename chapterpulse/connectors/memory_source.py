"""
In-memory data source.

Serves members, events and attendance from plain lists with the same ordering,
filtering and pagination rules as the hosted backend. Used when no Supabase
project is configured, by the demo script, and throughout the test suite.
"""

from typing import Iterable, Optional, Sequence

from chapterpulse.connectors.base import DataSource
from chapterpulse.models.records import AttendanceRecord, DateRange, Event, Member, Page


class MemorySource(DataSource):
    """
    DataSource over in-memory records.

    Attributes:
        members: All member records
        events: All event records
        attendance: All attendance rows, duplicates allowed
        approved_events_only: Hide events whose status is not "approved"
    """

    def __init__(
        self,
        members: Optional[Iterable[Member]] = None,
        events: Optional[Iterable[Event]] = None,
        attendance: Optional[Iterable[AttendanceRecord]] = None,
        approved_events_only: bool = False,
    ):
        self.members = list(members or [])
        self.events = list(events or [])
        self.attendance = list(attendance or [])
        self.approved_events_only = approved_events_only
        self.request_log: list[tuple[str, dict]] = []

    async def fetch_members(self, page: int, page_size: int) -> Page[Member]:
        self.request_log.append(("members", {"page": page, "page_size": page_size}))
        ordered = sorted(self.members, key=lambda m: m.last_name)
        return _paginate(ordered, page, page_size)

    async def fetch_events(self, page: int, page_size: int, date_range: DateRange) -> Page[Event]:
        self.request_log.append(
            ("events", {"page": page, "page_size": page_size, "date_range": date_range})
        )
        matching = [
            e
            for e in self.events
            if date_range.contains(e.start_time)
            and (not self.approved_events_only or e.status == "approved")
        ]
        matching.sort(key=lambda e: e.start_time, reverse=True)
        return _paginate(matching, page, page_size)

    async def fetch_attendance(self, event_ids: Sequence[str]) -> list[AttendanceRecord]:
        self.request_log.append(("attendance", {"event_ids": list(event_ids)}))
        wanted = set(event_ids)
        return [r for r in self.attendance if r.event_id in wanted]

    def requests_for(self, kind: str) -> list[dict]:
        """Arguments of every recorded request of one kind, oldest first."""
        return [args for logged_kind, args in self.request_log if logged_kind == kind]


def _paginate(rows: list, page: int, page_size: int) -> Page:
    start = page * page_size
    return Page(rows=rows[start : start + page_size], total_count=len(rows))
