"""
Enumeration types for the chapter analytics engine.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class MemberRole(str, Enum):
    """
    Roles a member record can carry.

    The backing store treats role as an open-ended string; these are the
    values the engine gives meaning to. Anything else is kept verbatim on the
    record and simply never matches an active-brother check.
    """

    BROTHER = "brother"
    PLEDGE = "pledge"
    OFFICER = "officer"
    PRESIDENT = "president"
    INACTIVE = "inactive"
    ALUMNI = "alumni"
    ABROAD = "abroad"


class CanonicalCategory(str, Enum):
    """
    Fixed point-type categories used for cross-event aggregation.

    Declaration order is the display/seed order of the category breakdown.
    """

    BROTHERHOOD = "Brotherhood"
    SERVICE = "Service"
    PROFESSIONALISM = "Professionalism"
    SCHOLARSHIP = "Scholarship"
    DEI = "DEI"
    HEALTH_WELLNESS = "H&W"
    FUNDRAISING = "Fundraising"


class SelectedMetric(str, Enum):
    """Dashboard view selector carried in the load coordinator state."""

    OVERVIEW = "overview"
    MEMBERS = "members"
    EVENTS = "events"
    ENGAGEMENT = "engagement"


class LoadStage(str, Enum):
    """
    Position of the load coordinator in its state machine.

    idle → members → events → attendance → idle | error
    """

    IDLE = "idle"
    MEMBERS = "members"
    EVENTS = "events"
    ATTENDANCE = "attendance"
    ERROR = "error"


class ResourceKind(str, Enum):
    """Resource kinds fetched from the data source, one in-flight request each."""

    MEMBERS = "members"
    EVENTS = "events"
    ATTENDANCE = "attendance"
