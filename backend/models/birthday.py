"""Pydantic models for birthday records and timing policies."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.types import EventDateString, RecordID, SendTime


class TimingPolicy(str, Enum):
    """How far ahead of the event a reminder goes out."""

    SAME_DAY = "same-day"
    ONE_DAY = "1-day"
    TWO_DAYS = "2-days"
    THREE_DAYS = "3-days"
    ONE_WEEK = "1-week"

    @property
    def lead_days(self) -> int:
        return LEAD_DAYS[self]


LEAD_DAYS: dict[TimingPolicy, int] = {
    TimingPolicy.SAME_DAY: 0,
    TimingPolicy.ONE_DAY: 1,
    TimingPolicy.TWO_DAYS: 2,
    TimingPolicy.THREE_DAYS: 3,
    TimingPolicy.ONE_WEEK: 7,
}


class BirthdayRecord(BaseModel):
    """A roster entry as stored in the birthdays table.

    Only ``last_notified_at``, ``notification_count`` and ``last_execution_id``
    are written by the reminder engine; everything else is owned by whoever
    manages the roster.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: RecordID
    date: EventDateString = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    rank: str = ""
    relationship: str = ""
    unit: str | None = None
    phone: str | None = None

    # Per-record overrides of the configured defaults
    notification_timing: TimingPolicy | None = None
    send_time: SendTime | None = Field(None, pattern=r"^\d{2}:\d{2}$")

    # Idempotence fields
    last_notified_at: datetime | None = None
    notification_count: int = Field(0, ge=0)
    last_execution_id: str | None = None

    created_at: datetime | None = None

    @field_validator("rank", "relationship", mode="before")
    @classmethod
    def _null_text_is_empty(cls, value):
        return "" if value is None else value

    @field_validator("notification_count", mode="before")
    @classmethod
    def _null_count_is_zero(cls, value):
        # NULL means never notified
        return 0 if value is None else value

    @field_validator("notification_timing", "send_time", mode="before")
    @classmethod
    def _blank_override_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def display_name(self) -> str:
        """Rank and name, the way the roster refers to people."""
        return f"{self.rank} {self.name}".strip()
