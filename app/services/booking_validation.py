from dataclasses import replace
from datetime import UTC, datetime, tzinfo

from app.core.config import settings
from app.models.scheduling import BookingRequest, Err, ErrorCode, Ok


def parse_timestamp(value: datetime | str | None, tz: tzinfo = UTC) -> datetime | None:
    """ISO 8601 string or datetime -> aware datetime. Naive values are read in tz."""
    if value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            value = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
        except ValueError:
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value


def validate_booking_request(
    req: BookingRequest, now: datetime, tz: tzinfo = UTC
) -> Ok[BookingRequest] | Err:
    """Check a booking request; first failure wins.

    Summary overflow is not an error: it is cut to the configured length.
    """
    start = parse_timestamp(req.start, tz)
    end = parse_timestamp(req.end, tz)
    if start is None or end is None:
        return Err(ErrorCode.INVALID_FORMAT, "start and end must be ISO 8601 timestamps")
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    if start < now:
        return Err(ErrorCode.PAST_DATE, "Cannot book appointments in the past")
    duration = (end - start).total_seconds() / 60
    if duration < settings.min_duration_minutes or duration > settings.max_duration_minutes:
        return Err(
            ErrorCode.INVALID_DURATION,
            f"Appointment duration must be between {settings.min_duration_minutes} "
            f"and {settings.max_duration_minutes} minutes",
        )
    if end <= start:
        return Err(ErrorCode.INVALID_ORDER, "End time must be after start time")
    summary = (req.summary or f"Booked via {settings.site_name}")[: settings.summary_max_length]
    return Ok(replace(req, start=start, end=end, summary=summary))
