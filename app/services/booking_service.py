import logging
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.models.scheduling import (
    AppointmentInsertCommand,
    AppointmentRecord,
    BookingRequest,
    BusyInterval,
    Err,
    ErrorCode,
    Ok,
    Slot,
    SlotRequest,
)
from app.services.booking_validation import validate_booking_request
from app.services.business_hours import BusinessHours, validate_business_window
from app.services.date_parser import parse_natural_date
from app.services.slot_service import align_to_step, closed_intervals, generate_slots, has_conflict

logger = logging.getLogger(__name__)

# (method, minutes before start)
DEFAULT_REMINDERS = [("email", 24 * 60), ("popup", 30)]


class CalendarBackend(Protocol):
    async def free_busy(
        self, start: datetime, end: datetime, timezone: str | None = None
    ) -> list[BusyInterval]: ...

    async def insert_event(self, command: AppointmentInsertCommand) -> AppointmentRecord: ...


def summary_for(service_type: str | None, customer_name: str | None) -> str:
    return f"{service_type or 'Appointment'} - {customer_name or 'Customer'}"


def build_insert_command(
    booking: BookingRequest,
    timezone: str,
    attendees: Sequence[str] = (),
    booked_by: str | None = None,
    reminders: Sequence[tuple[str, int]] = DEFAULT_REMINDERS,
) -> AppointmentInsertCommand:
    """Event payload for a validated booking (start/end already datetimes)."""
    tz = ZoneInfo(timezone)
    lines = [
        booking.customer_name and f"Customer: {booking.customer_name}",
        booking.customer_phone and f"Phone: {booking.customer_phone}",
        booking.customer_email and f"Email: {booking.customer_email}",
        booking.service_type and f"Service: {booking.service_type}",
        booked_by and f"Booked by: {booked_by.capitalize()} AI Assistant",
        f"Powered by {settings.site_name}",
    ]
    return AppointmentInsertCommand(
        summary=booking.summary or summary_for(booking.service_type, booking.customer_name),
        start=booking.start.astimezone(tz),
        end=booking.end.astimezone(tz),
        timezone=timezone,
        description="\n".join(line for line in lines if line),
        attendees=[a for a in attendees if a],
        reminders=list(reminders),
    )


def availability_window(
    now: datetime,
    timezone: str,
    on_date: date | None = None,
    days: int | None = None,
    step_minutes: int | None = None,
) -> tuple[datetime, datetime]:
    """Search window: the next N days, or one local calendar day when on_date is given."""
    tz = ZoneInfo(timezone)
    local_now = now.astimezone(tz)
    if on_date is not None:
        start = max(local_now, datetime.combine(on_date, time.min, tzinfo=tz))
        end = datetime.combine(on_date + timedelta(days=1), time.min, tzinfo=tz)
    else:
        start = local_now
        end = local_now + timedelta(days=days or settings.availability_window_days)
    return align_to_step(start, step_minutes or settings.slot_step_minutes), end


async def find_available_slots(
    calendar: CalendarBackend,
    request: SlotRequest,
    timezone: str,
    hours: BusinessHours | None = None,
) -> list[Slot]:
    """Free slots in the window; with hours given, closed periods count as busy."""
    tz = ZoneInfo(timezone)
    if request.window_start >= request.window_end:
        return []
    busy = await calendar.free_busy(request.window_start, request.window_end, timezone)
    if hours is not None:
        busy = [*busy, *closed_intervals(request.window_start, request.window_end, hours, tz)]
    slots = generate_slots(
        busy,
        request.window_start,
        request.window_end,
        request.duration_minutes,
        request.desired_count,
        step_minutes=settings.slot_step_minutes,
    )
    return [Slot(start=s.start.astimezone(tz), end=s.end.astimezone(tz)) for s in slots]


async def book_appointment(
    calendar: CalendarBackend,
    request: BookingRequest,
    now: datetime,
    timezone: str,
    attendees: Sequence[str] = (),
    booked_by: str | None = None,
) -> Ok[AppointmentRecord] | Err:
    """Validate, re-check the requested window, then insert.

    Another booking can land between the free/busy check and the insert; the
    calendar provider's insert result is what counts.
    """
    validated = validate_booking_request(request, now, ZoneInfo(timezone))
    if isinstance(validated, Err):
        return validated
    booking = validated.value
    busy = await calendar.free_busy(booking.start, booking.end)
    if has_conflict(busy, booking.start, booking.end):
        logger.info("Booking conflict for %s - %s", booking.start.isoformat(), booking.end.isoformat())
        return Err(ErrorCode.CONFLICT, "This time slot has already been booked")
    command = build_insert_command(booking, timezone, attendees=attendees, booked_by=booked_by)
    record = await calendar.insert_event(command)
    logger.info("Appointment booked: %s - %s (%s)", command.start.isoformat(), command.end.isoformat(), command.summary)
    return Ok(record)


async def book_from_voice(
    calendar: CalendarBackend,
    *,
    date_phrase: str | None,
    time_phrase: str | None,
    duration_minutes: int,
    customer_name: str | None,
    customer_phone: str | None,
    customer_email: str | None,
    service_type: str | None,
    timezone: str,
    now: datetime,
    hours: BusinessHours | None = None,
    attendees: Sequence[str] = (),
    booked_by: str | None = None,
) -> Ok[AppointmentRecord] | Err:
    """Spoken date/time -> business-hours check -> regular booking path."""
    parsed = parse_natural_date(date_phrase, time_phrase, timezone, now=now)
    if isinstance(parsed, Err):
        return parsed
    in_hours = validate_business_window(parsed.value, timezone, hours)
    if isinstance(in_hours, Err):
        return in_hours
    start = parsed.value
    request = BookingRequest(
        start=start,
        end=start + timedelta(minutes=duration_minutes),
        summary=summary_for(service_type, customer_name),
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_email=customer_email,
        service_type=service_type,
    )
    return await book_appointment(calendar, request, now, timezone, attendees=attendees, booked_by=booked_by)
