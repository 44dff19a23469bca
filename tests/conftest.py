"""
Pytest configuration and shared fixtures for the ChapterPulse test suite.

Model factories, a deterministic sample chapter, an in-memory data source, and
a gated source whose fetches can be held open or made to fail so coordinator
cancellation and error paths can be driven step by step.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence
from uuid import uuid4

import pytest

# Set testing environment BEFORE importing app modules
os.environ["TESTING"] = "true"
os.environ["SUPABASE_URL"] = ""
os.environ["LOAD_ON_STARTUP"] = "false"

from chapterpulse.config import Settings
from chapterpulse.connectors.memory_source import MemorySource
from chapterpulse.engine.coordinator import LoadCoordinator
from chapterpulse.models.records import AttendanceRecord, DateRange, Event, Member, Page

# Fixed clock for every date-range computation in tests
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Pydantic model factories, reusable across all test suites
# ---------------------------------------------------------------------------


def make_member(
    user_id: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "Member",
    role: str = "brother",
    **overrides,
) -> Member:
    """Create a Member with sensible defaults."""
    return Member(
        user_id=user_id or f"user_{uuid4().hex[:8]}",
        first_name=first_name,
        last_name=last_name,
        email=overrides.pop("email", f"{first_name.lower()}@example.edu"),
        role=role,
        **overrides,
    )


def make_event(
    event_id: Optional[str] = None,
    title: str = "Chapter Event",
    start_time: Optional[datetime] = None,
    point_value: float = 5.0,
    point_type: str = "Brotherhood",
    creator_id: Optional[str] = None,
    status: str = "approved",
) -> Event:
    """Create an Event starting a week before NOW and lasting two hours."""
    start = start_time or NOW - timedelta(days=7)
    return Event(
        id=event_id or f"event_{uuid4().hex[:8]}",
        title=title,
        start_time=start,
        end_time=start + timedelta(hours=2),
        point_value=point_value,
        point_type=point_type,
        creator_id=creator_id,
        status=status,
    )


def make_attendance(
    user_id: str,
    event_id: str,
    rsvp: bool = True,
    attended: bool = True,
) -> AttendanceRecord:
    """Create an AttendanceRecord."""
    return AttendanceRecord(user_id=user_id, event_id=event_id, rsvp=rsvp, attended=attended)


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "supabase_url": "",
        "testing": True,
        "fetch_retry_backoff_seconds": 0.0,
        "load_on_startup": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_chapter() -> tuple[list[Member], list[Event], list[AttendanceRecord]]:
    """
    A small deterministic chapter.

    Members: 3 active brothers (one officer), 1 pledge, 1 inactive brother.
    Events: Brotherhood (10 pts), Service (5 pts), custom "Intramurals" (2 pts).
    Attendance includes a duplicate row and a pledge attending.
    """
    members = [
        make_member("u1", "Alex", "Adams", "brother", pledge_class="Fall 2023",
                    house_membership="North", gender="Male", race="White",
                    sexual_orientation="Straight", majors="Economics", expected_graduation=2026,
                    living_type="On Campus"),
        make_member("u2", "Blake", "Baker", "officer", officer_position="Treasurer",
                    pledge_class="Fall 2023", house_membership="South", gender="Male",
                    race="Asian", sexual_orientation="Gay", majors="Biology, Chemistry",
                    expected_graduation=2027, living_type="Off Campus"),
        make_member("u3", "Casey", "Clark", "brother", pledge_class="Spring 2024",
                    house_membership="North", gender="Female", race="Black",
                    sexual_orientation="Straight", majors="Economics", expected_graduation=2028,
                    living_type="On Campus"),
        make_member("u4", "Drew", "Davis", "pledge", pledge_class="Fall 2025", gender="Male"),
        make_member("u5", "Eli", "Evans", "inactive", pledge_class="Fall 2022"),
    ]
    events = [
        make_event("e1", "Brotherhood Mixer", NOW - timedelta(days=10), 10, "Brotherhood Mixer", creator_id="u2"),
        make_event("e2", "Food Bank Shift", NOW - timedelta(days=20), 5, "Community Service", creator_id="u2"),
        make_event("e3", "Intramural Soccer", NOW - timedelta(days=30), 2, "Intramurals"),
    ]
    attendance = [
        make_attendance("u1", "e1"),
        make_attendance("u1", "e1"),  # duplicate row
        make_attendance("u1", "e2"),
        make_attendance("u2", "e1"),
        make_attendance("u2", "e3", rsvp=True, attended=False),
        make_attendance("u3", "e2", rsvp=False, attended=True),
        make_attendance("u4", "e1"),
        make_attendance("u1", "e_missing"),  # references an unloaded event
    ]
    return members, events, attendance


# ---------------------------------------------------------------------------
# Controllable data source
# ---------------------------------------------------------------------------


class GatedSource(MemorySource):
    """
    MemorySource whose fetches can be held open or made to fail.

    ``hold(kind)`` makes subsequent fetches of that kind wait until
    ``release(kind)``; ``fail(kind, exc)`` makes the next one that gets past
    its gate raise. Every fetch call is recorded in ``request_log`` before it
    blocks.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._gates: dict[str, asyncio.Event] = {}
        self._failures: dict[str, Exception] = {}
        self.started: dict[str, int] = {"members": 0, "events": 0, "attendance": 0}

    def hold(self, kind: str) -> None:
        self._gates[kind] = asyncio.Event()

    def release(self, kind: str) -> None:
        gate = self._gates.pop(kind, None)
        if gate is not None:
            gate.set()

    def fail(self, kind: str, exc: Exception) -> None:
        self._failures[kind] = exc

    def recover(self, kind: str) -> None:
        self._failures.pop(kind, None)

    async def _checkpoint(self, kind: str) -> None:
        self.started[kind] += 1
        gate = self._gates.get(kind)
        if gate is not None:
            await gate.wait()
        failure = self._failures.pop(kind, None)
        if failure is not None:
            raise failure

    async def fetch_members(self, page: int, page_size: int) -> Page[Member]:
        result = await super().fetch_members(page, page_size)
        await self._checkpoint("members")
        return result

    async def fetch_events(self, page: int, page_size: int, date_range: DateRange) -> Page[Event]:
        result = await super().fetch_events(page, page_size, date_range)
        await self._checkpoint("events")
        return result

    async def fetch_attendance(self, event_ids: Sequence[str]) -> list[AttendanceRecord]:
        result = await super().fetch_attendance(event_ids)
        await self._checkpoint("attendance")
        return result


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def chapter():
    return make_chapter()


@pytest.fixture
def sample_members(chapter) -> list[Member]:
    return chapter[0]


@pytest.fixture
def sample_events(chapter) -> list[Event]:
    return chapter[1]


@pytest.fixture
def sample_attendance(chapter) -> list[AttendanceRecord]:
    return chapter[2]


@pytest.fixture
def memory_source(chapter) -> MemorySource:
    members, events, attendance = chapter
    return MemorySource(members, events, attendance)


@pytest.fixture
def gated_source(chapter) -> GatedSource:
    members, events, attendance = chapter
    return GatedSource(members, events, attendance)


@pytest.fixture
def coordinator(memory_source, test_settings) -> LoadCoordinator:
    return LoadCoordinator(memory_source, settings=test_settings, now=NOW)
