"""Value types shared by the availability and booking engine.

None of these are persisted: busy intervals come fresh from the calendar
provider on every request and appointments are owned by the provider.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCode(StrEnum):
    INVALID_FORMAT = "invalid_format"
    PAST_DATE = "past_date"
    INVALID_DURATION = "invalid_duration"
    INVALID_ORDER = "invalid_order"
    UNPARSEABLE_DATE = "unparseable_date"
    UNPARSEABLE_TIME = "unparseable_time"
    OUTSIDE_HOURS = "outside_hours"
    WEEKEND_REQUESTED = "weekend_requested"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    code: ErrorCode
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class SlotRequest:
    window_start: datetime
    window_end: datetime
    duration_minutes: int = 30
    desired_count: int = 3


@dataclass(frozen=True)
class BookingRequest:
    """Booking payload. start/end may arrive as ISO strings; validation
    returns a copy with aware datetimes."""

    start: datetime | str | None
    end: datetime | str | None
    summary: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    service_type: str | None = None


@dataclass(frozen=True)
class AppointmentInsertCommand:
    summary: str
    start: datetime
    end: datetime
    timezone: str
    description: str = ""
    attendees: list[str] = field(default_factory=list)
    reminders: list[tuple[str, int]] = field(default_factory=list)

    def to_event_body(self) -> dict[str, Any]:
        """Google Calendar v3 event resource."""
        body: dict[str, Any] = {
            "summary": self.summary,
            "start": {"dateTime": self.start.isoformat(), "timeZone": self.timezone},
            "end": {"dateTime": self.end.isoformat(), "timeZone": self.timezone},
        }
        if self.description:
            body["description"] = self.description
        if self.attendees:
            body["attendees"] = [{"email": email} for email in self.attendees]
        if self.reminders:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [{"method": method, "minutes": minutes} for method, minutes in self.reminders],
            }
        return body


@dataclass(frozen=True)
class AppointmentRecord:
    id: str
    html_link: str
    start: datetime
    end: datetime
