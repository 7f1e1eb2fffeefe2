import logging
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_calendar_client, get_current_tenant, get_session, persist_refreshed_token
from app.api.schemas.calendar import (
    AvailabilityResponse,
    BookAppointmentRequest,
    BookAppointmentResponse,
    SlotOut,
)
from app.core.config import settings
from app.models.scheduling import BookingRequest, Err, ErrorCode, SlotRequest
from app.models.tenant import Tenant
from app.services.booking_service import availability_window, book_appointment, find_available_slots
from app.services.calendar_client import CalendarError, GoogleCalendarClient
from app.services.notification_service import notify_booking
from app.services.tenant_service import tenant_business_hours
from app.services.voice_responses import format_spoken_time

logger = logging.getLogger(__name__)
router = APIRouter(tags=["calendar"])


def calendar_http_error(e: CalendarError, action: str) -> HTTPException:
    if e.status_code == 401:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Calendar credentials need to be refreshed",
        )
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to {action}")


@router.get("/get-availability", response_model=AvailabilityResponse)
async def get_availability(
    date_param: date | None = Query(None, alias="date"),
    duration: int = Query(settings.default_duration_minutes),
    count: int = Query(settings.default_slot_count),
    session: AsyncSession = Depends(get_session),
    tenant: Tenant = Depends(get_current_tenant),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> AvailabilityResponse:
    """Free slots inside business hours over the next days, or on one local date."""
    if not settings.min_duration_minutes <= duration <= settings.max_duration_minutes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Duration must be between {settings.min_duration_minutes} and {settings.max_duration_minutes} minutes",
        )
    if not 1 <= count <= settings.max_slot_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Count must be between 1 and {settings.max_slot_count}",
        )
    window_start, window_end = availability_window(datetime.now(UTC), tenant.timezone, on_date=date_param)
    request = SlotRequest(window_start, window_end, duration_minutes=duration, desired_count=count)
    try:
        slots = await find_available_slots(calendar, request, tenant.timezone, tenant_business_hours(tenant))
    except CalendarError as e:
        logger.warning("Availability lookup failed for tenant %s: %s", tenant.id, e)
        raise calendar_http_error(e, "get availability") from e
    finally:
        await persist_refreshed_token(session, tenant, calendar)
    return AvailabilityResponse(slots=[SlotOut(start=s.start, end=s.end) for s in slots])


@router.post("/book-appointment", response_model=BookAppointmentResponse)
async def book(
    body: BookAppointmentRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    tenant: Tenant = Depends(get_current_tenant),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> BookAppointmentResponse:
    request = BookingRequest(**body.model_dump())
    try:
        result = await book_appointment(calendar, request, datetime.now(UTC), tenant.timezone)
    except CalendarError as e:
        logger.warning("Booking failed for tenant %s: %s", tenant.id, e)
        raise calendar_http_error(e, "book appointment") from e
    finally:
        await persist_refreshed_token(session, tenant, calendar)

    if isinstance(result, Err):
        code = status.HTTP_409_CONFLICT if result.code == ErrorCode.CONFLICT else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail={"error": result.code.value, "message": result.detail})

    record = result.value
    background_tasks.add_task(
        notify_booking,
        record=record,
        booking=request,
        confirmation_time=format_spoken_time(record.start.astimezone(ZoneInfo(tenant.timezone))),
        owner_phone=tenant.phone,
        owner_email=tenant.email,
    )
    return BookAppointmentResponse(success=True, event_id=record.id, html_link=record.html_link)
