from collections.abc import Iterable, Sequence
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.models.scheduling import BusyInterval, Slot
from app.services.business_hours import BusinessHours

DEFAULT_STEP_MINUTES = 30


def overlaps(busy: BusyInterval, start: datetime, end: datetime) -> bool:
    """Half-open overlap: intervals that only share an endpoint do not overlap."""
    return busy.start < end and busy.end > start


def generate_slots(
    busy: Sequence[BusyInterval],
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    desired_count: int,
    step_minutes: int = DEFAULT_STEP_MINUTES,
) -> list[Slot]:
    """Walk the window in fixed steps and collect free candidates.

    The cursor always advances by step_minutes whatever the duration, so every
    slot starts on a step boundary relative to window_start. Returns fewer than
    desired_count slots when the window runs out.
    """
    slots: list[Slot] = []
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    cursor = window_start
    while len(slots) < desired_count and cursor < window_end:
        candidate_end = cursor + duration
        if candidate_end <= window_end and not any(overlaps(b, cursor, candidate_end) for b in busy):
            slots.append(Slot(start=cursor, end=candidate_end))
        cursor += step
    return slots


def has_conflict(busy: Iterable[BusyInterval], requested_start: datetime, requested_end: datetime) -> bool:
    """True when any busy interval overlaps the requested window.

    This is the check half of check-then-act: a booking can still land between
    this check and the insert. The provider's insert is the final authority.
    """
    return any(overlaps(b, requested_start, requested_end) for b in busy)


def align_to_step(ts: datetime, step_minutes: int = DEFAULT_STEP_MINUTES) -> datetime:
    """Round ts up to the next step boundary within its hour grid."""
    if ts.second or ts.microsecond:
        ts = ts.replace(second=0, microsecond=0) + timedelta(minutes=1)
    remainder = ts.minute % step_minutes
    if remainder:
        ts += timedelta(minutes=step_minutes - remainder)
    return ts


def closed_intervals(
    window_start: datetime,
    window_end: datetime,
    hours: BusinessHours,
    tz: ZoneInfo,
) -> list[BusyInterval]:
    """Periods inside the window when the business is closed, as busy intervals."""
    intervals: list[BusyInterval] = []
    day = window_start.astimezone(tz).date()
    last_day = window_end.astimezone(tz).date()
    while day <= last_day:
        day_start = datetime.combine(day, time.min, tzinfo=tz)
        next_day = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
        if day.weekday() in hours.closed_weekdays:
            intervals.append(BusyInterval(day_start, next_day))
        else:
            opens = datetime.combine(day, time(hour=hours.start_hour), tzinfo=tz)
            intervals.append(BusyInterval(day_start, opens))
            if hours.end_hour < 24:
                closes = datetime.combine(day, time(hour=hours.end_hour), tzinfo=tz)
                intervals.append(BusyInterval(closes, next_day))
        day += timedelta(days=1)
    return intervals
