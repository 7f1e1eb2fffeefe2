from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.models.scheduling import Err, ErrorCode, Ok

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class BusinessHours:
    start_hour: int = 9
    end_hour: int = 17  # exclusive
    closed_weekdays: tuple[int, ...] = (5, 6)  # datetime.weekday(): Saturday, Sunday

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(
                f"business hours must satisfy 0 <= start < end <= 24, got {self.start_hour}-{self.end_hour}"
            )

    @classmethod
    def from_settings(cls) -> "BusinessHours":
        return cls(start_hour=settings.business_start_hour, end_hour=settings.business_end_hour)

    @property
    def label(self) -> str:
        return f"{_hour_label(self.start_hour)} to {_hour_label(self.end_hour)}"

    def weekly_schedule(self) -> dict[str, dict]:
        opens = f"{self.start_hour:02d}:00"
        closes = f"{self.end_hour:02d}:00"
        return {
            name: {"closed": True} if i in self.closed_weekdays else {"open": opens, "close": closes}
            for i, name in enumerate(WEEKDAY_NAMES)
        }


def _hour_label(hour: int) -> str:
    suffix = "AM" if hour < 12 or hour == 24 else "PM"
    display = hour % 12 or 12
    return f"{display} {suffix}"


def validate_business_window(
    ts: datetime, timezone: str | ZoneInfo, hours: BusinessHours | None = None
) -> Ok[datetime] | Err:
    """Accept ts only inside opening hours on an open day, judged in local time."""
    hours = hours or BusinessHours.from_settings()
    try:
        tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
    except (ZoneInfoNotFoundError, ValueError):
        return Err(ErrorCode.OUTSIDE_HOURS, f"Unknown timezone {timezone}")
    local = ts.astimezone(tz) if ts.tzinfo else ts.replace(tzinfo=tz)
    if local.hour < hours.start_hour or local.hour >= hours.end_hour:
        return Err(ErrorCode.OUTSIDE_HOURS, f"Requested hour {local.hour} is outside {hours.label}")
    if local.weekday() in hours.closed_weekdays:
        return Err(ErrorCode.WEEKEND_REQUESTED, WEEKDAY_NAMES[local.weekday()].capitalize())
    return Ok(local)
