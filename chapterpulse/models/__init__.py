"""
Pydantic v2 data models for the chapter analytics engine.

Model Organization:
    - enums: Roles, canonical categories and coordinator enums
    - records: Raw Member / Event / AttendanceRecord rows and paging shapes
    - analytics: Derived dashboard views
    - report: End-of-semester report

Usage:
    >>> from chapterpulse.models import Member, Event, AttendanceRecord
    >>> member = Member(user_id="u1", first_name="Sam", last_name="Ortiz", role="Brother")
    >>> member.role
    'brother'
"""

from .enums import CanonicalCategory, LoadStage, MemberRole, ResourceKind, SelectedMetric
from .records import AttendanceRecord, DateRange, Event, Member, Page
from .analytics import (
    CategoryPointsBreakdown,
    CategoryRequirementProgress,
    DistributionEntry,
    DiversityMetrics,
    EventAnalytics,
    GroupPointsSummary,
    HealthMetrics,
    MemberCategoryPoints,
    MemberPerformance,
)
from .report import SemesterReport

__all__ = [
    # Enumerations
    "CanonicalCategory",
    "LoadStage",
    "MemberRole",
    "ResourceKind",
    "SelectedMetric",
    # Records
    "AttendanceRecord",
    "DateRange",
    "Event",
    "Member",
    "Page",
    # Derived views
    "CategoryPointsBreakdown",
    "CategoryRequirementProgress",
    "DistributionEntry",
    "DiversityMetrics",
    "EventAnalytics",
    "GroupPointsSummary",
    "HealthMetrics",
    "MemberCategoryPoints",
    "MemberPerformance",
    # Reports
    "SemesterReport",
]
