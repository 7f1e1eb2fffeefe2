"""Best-effort parsing of the date/time phrases a caller speaks to the assistant.

Date phrases go through an ordered list of strategies; the first one that
returns a date wins. Each strategy is a pure function of the phrase and the
current local time, so the order can be extended without touching the
others. This is a heuristic, not a general natural-language parser.
"""

import logging
import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.models.scheduling import Err, ErrorCode, Ok

logger = logging.getLogger(__name__)

DateStrategy = Callable[[str, datetime], date | None]

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

# MM/dd/yyyy, MM-dd-yyyy, yyyy-MM-dd, MMMM d, yyyy
FALLBACK_FORMATS = ("%m/%d/%Y", "%m-%d-%Y", "%Y-%m-%d", "%B %d, %Y")

_TIME_RE = re.compile(r"(\d{1,2}):?(\d{0,2})\s*([ap])?\.?(?:m\.?)?", re.IGNORECASE)
_NEXT_WEEKDAY_RE = re.compile(r"next\s+(" + "|".join(WEEKDAYS) + r")")


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence strictly after today; today's weekday gives a week out."""
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def _today(phrase: str, now: datetime) -> date | None:
    return now.date() if "today" in phrase.lower() else None


def _tomorrow(phrase: str, now: datetime) -> date | None:
    return now.date() + timedelta(days=1) if "tomorrow" in phrase.lower() else None


def _next_named_weekday(phrase: str, now: datetime) -> date | None:
    match = _NEXT_WEEKDAY_RE.search(phrase.lower())
    if not match:
        return None
    return next_weekday(now.date(), WEEKDAYS[match.group(1)])


def _iso(phrase: str, now: datetime) -> date | None:
    try:
        parsed = datetime.fromisoformat(phrase.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(now.tzinfo)
    return parsed.date()


def _fallback_formats(phrase: str, now: datetime) -> date | None:
    cleaned = phrase.strip()
    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


DATE_STRATEGIES: tuple[DateStrategy, ...] = (
    _today,
    _tomorrow,
    _next_named_weekday,
    _iso,
    _fallback_formats,
)


def resolve_date(phrase: str, now: datetime, strategies: tuple[DateStrategy, ...] = DATE_STRATEGIES) -> date | None:
    for strategy in strategies:
        resolved = strategy(phrase, now)
        if resolved is not None:
            return resolved
    return None


def parse_time(phrase: str) -> time | None:
    """'2pm', '9:30am', '14:00', '12 AM' -> time; 12-hour input goes to 24-hour."""
    match = _TIME_RE.search(phrase)
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").lower()
    if meridiem == "p" and hour != 12:
        hour += 12
    elif meridiem == "a" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour=hour, minute=minute)


def parse_natural_date(
    date_phrase: str | None,
    time_phrase: str | None,
    timezone: str | ZoneInfo,
    now: datetime | None = None,
) -> Ok[datetime] | Err:
    """Combine a spoken date and time into an aware timestamp in timezone.

    A result before now is pushed forward by exactly one day, once; phrases
    that land further in the past than that are returned as-is.
    """
    try:
        tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %s while parsing date", timezone)
        return Err(ErrorCode.UNPARSEABLE_DATE, f"Unknown timezone {timezone}")
    local_now = (now or datetime.now(tz)).astimezone(tz)

    target_date = resolve_date(date_phrase, local_now) if date_phrase else None
    if target_date is None:
        logger.info("Could not parse date phrase %r", date_phrase)
        return Err(ErrorCode.UNPARSEABLE_DATE, f"Could not understand the date {date_phrase!r}")

    target_time = parse_time(time_phrase) if time_phrase else None
    if target_time is None:
        logger.info("Could not parse time phrase %r", time_phrase)
        return Err(ErrorCode.UNPARSEABLE_TIME, f"Could not understand the time {time_phrase!r}")

    result = datetime.combine(target_date, target_time, tzinfo=tz)
    if result < local_now:
        logger.debug("Parsed %s is in the past, moving one day ahead", result.isoformat())
        result += timedelta(days=1)
    return Ok(result)
