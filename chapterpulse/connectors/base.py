"""
Abstract data source interface for the chapter analytics engine.

The load coordinator talks to members, events and attendance only through
this contract, so the hosted Supabase backend and the in-memory source used by
demos and tests are interchangeable. Implementations are async and must be
cancellation-safe: a superseded fetch is cancelled mid-await and its result
is never used.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from chapterpulse.models.records import AttendanceRecord, DateRange, Event, Member, Page


class FetchError(Exception):
    """Raised when a data source request fails."""

    pass


class DataSource(ABC):
    """
    Abstract base class for chapter record sources.

    Implementations should ensure:
    - Members are ordered by last name ascending
    - Events are ordered by start time descending and filtered to the range
    - ``total_count`` reports the total across all pages, not the page size
    - Failures surface as ``FetchError``
    """

    @abstractmethod
    async def fetch_members(self, page: int, page_size: int) -> Page[Member]:
        """
        Fetch one page of members ordered by last name.

        Args:
            page: Zero-based page index
            page_size: Rows per page

        Returns:
            Page of members with the total member count

        Raises:
            FetchError: If the request fails
        """
        pass

    @abstractmethod
    async def fetch_events(self, page: int, page_size: int, date_range: DateRange) -> Page[Event]:
        """
        Fetch one page of events starting inside ``date_range``.

        Args:
            page: Zero-based page index
            page_size: Rows per page
            date_range: Inclusive window on event start time

        Returns:
            Page of events, most recent first, with the total count in range

        Raises:
            FetchError: If the request fails
        """
        pass

    @abstractmethod
    async def fetch_attendance(self, event_ids: Sequence[str]) -> list[AttendanceRecord]:
        """
        Fetch all attendance rows for the given events.

        Args:
            event_ids: Events to fetch attendance for (never empty)

        Returns:
            Attendance rows, duplicates included as stored

        Raises:
            FetchError: If the request fails
        """
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
        return None
