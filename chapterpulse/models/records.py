"""
Raw record models for members, events and attendance.

These are the shapes the data source hands to the engine. The backing store is
loosely typed (optional demographics, camelCase leftovers from older clients,
nullable point values), so every defaulting rule lives here in validators
instead of being re-checked by each consumer.
"""

import calendar
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

T = TypeVar("T")

_RECORD_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return str(v)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so range comparisons never mix awareness."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def subtract_months(value: datetime, months: int) -> datetime:
    """Shift a datetime back by whole calendar months, clamping the day."""
    month_index = value.month - 1 - months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class Member(BaseModel):
    """
    Chapter member as stored by the registration and profile flows.

    Read-only to the engine. ``user_id`` is unique within a loaded page;
    uniqueness across pages is the backing store's responsibility.

    Attributes:
        user_id: Stable member identity
        first_name: Given name
        last_name: Family name (member pages are ordered by this)
        email: Contact address
        role: Lower-cased role string (brother, pledge, officer, president,
            inactive, alumni, abroad, or anything else the store holds)
        pledge_class: Pledge class label, e.g. "Fall 2023"
        majors: Comma-separated list of majors
        expected_graduation: Expected graduation year
        officer_position: Officer title when the member holds one
    """

    model_config = _RECORD_CONFIG

    user_id: str = Field(description="Stable member identity")
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name")
    email: str = Field(default="", description="Contact address")
    role: str = Field(default="", description="Lower-cased role string")
    pledge_class: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("pledge_class", "pledgeClass")
    )
    gender: Optional[str] = None
    pronouns: Optional[str] = None
    race: Optional[str] = None
    sexual_orientation: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("sexual_orientation", "sexualOrientation")
    )
    majors: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("majors", "major", "selectedMajors")
    )
    minors: Optional[str] = None
    expected_graduation: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("expected_graduation", "expectedGraduation", "grad_year"),
    )
    living_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("living_type", "livingType", "housing")
    )
    house_membership: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("house_membership", "houseMembership")
    )
    officer_position: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("officer_position", "officerPosition")
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def validate_user_id(cls, v) -> str:
        """Member identity must be present."""
        v = _blank_to_none(v)
        if v is None:
            raise ValueError("user_id cannot be empty")
        return v

    @field_validator("first_name", "last_name", "email", mode="before")
    @classmethod
    def default_required_text(cls, v) -> str:
        """Null names and emails become empty strings."""
        return _blank_to_none(v) or ""

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v) -> str:
        """Roles compare case-insensitively."""
        return (_blank_to_none(v) or "").lower()

    @field_validator(
        "pledge_class",
        "gender",
        "pronouns",
        "race",
        "sexual_orientation",
        "majors",
        "minors",
        "living_type",
        "house_membership",
        "officer_position",
        mode="before",
    )
    @classmethod
    def blank_optional_to_none(cls, v) -> Optional[str]:
        """Whitespace-only optional fields count as missing."""
        return _blank_to_none(v)

    @field_validator("expected_graduation", mode="before")
    @classmethod
    def parse_graduation_year(cls, v) -> Optional[int]:
        """Accept ints and numeric strings; anything else is treated as missing."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float):
            return int(v) if v.is_integer() else None
        text = str(v).strip()
        try:
            return int(text)
        except ValueError:
            return None

    @property
    def display_name(self) -> str:
        """Full name as shown on dashboards."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def major_list(self) -> list[str]:
        """Majors split out of the comma-separated field."""
        if not self.majors:
            return []
        return [m.strip() for m in self.majors.split(",") if m.strip()]


class Event(BaseModel):
    """
    Point-earning chapter event.

    Attributes:
        id: Event identifier
        title: Display title
        start_time: Start instant (naive values are read as UTC)
        end_time: End instant; ``start_time < end_time`` is assumed, not enforced
        point_value: Points awarded for attending (non-negative)
        point_type: Free-text category label, normalized at aggregation time
        creator_id: Member who created the event
        status: Approval status as stored (e.g. "approved", "pending")
    """

    model_config = _RECORD_CONFIG

    id: str = Field(description="Event identifier")
    title: str = Field(default="", description="Display title")
    start_time: datetime = Field(description="Start instant")
    end_time: datetime = Field(description="End instant")
    point_value: float = Field(default=0.0, ge=0, description="Points for attending")
    point_type: str = Field(default="", description="Free-text category label")
    creator_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("creator_id", "created_by")
    )
    status: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v) -> str:
        """Event identity must be present."""
        v = _blank_to_none(v)
        if v is None:
            raise ValueError("id cannot be empty")
        return v

    @field_validator("title", "point_type", mode="before")
    @classmethod
    def default_text(cls, v) -> str:
        """Null labels become empty strings."""
        return v.strip() if isinstance(v, str) else ("" if v is None else str(v))

    @field_validator("point_value", mode="before")
    @classmethod
    def default_point_value(cls, v):
        """Events without a point value award nothing."""
        return 0.0 if v is None else v

    @field_validator("creator_id", "status", mode="before")
    @classmethod
    def blank_optional_to_none(cls, v) -> Optional[str]:
        """Whitespace-only optional fields count as missing."""
        return _blank_to_none(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Store instants as timezone-aware values."""
        return ensure_utc(v)


class AttendanceRecord(BaseModel):
    """
    One attendance row for a (member, event) pair.

    The source data may hold several rows for the same pair; the engine
    collapses them before counting.
    """

    model_config = _RECORD_CONFIG

    user_id: str
    event_id: str
    rsvp: bool = False
    attended: bool = False

    @field_validator("rsvp", "attended", mode="before")
    @classmethod
    def default_flags(cls, v) -> bool:
        """Null flags mean no."""
        return False if v is None else v

    @property
    def key(self) -> tuple[str, str]:
        """Deduplication key."""
        return (self.user_id, self.event_id)


class DateRange(BaseModel):
    """Inclusive window applied to event start times."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Compare against event instants in UTC."""
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        """Ensure the window is not inverted."""
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end

    @classmethod
    def trailing_months(cls, months: int, now: Optional[datetime] = None) -> "DateRange":
        """Window covering the last ``months`` calendar months up to ``now``."""
        end = ensure_utc(now or datetime.now(timezone.utc))
        return cls(start=subtract_months(end, months), end=end)


class Page(BaseModel, Generic[T]):
    """One page of rows plus the server-reported total across all pages."""

    rows: list[T] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
