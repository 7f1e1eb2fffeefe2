import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_calendar_factory, get_current_tenant, get_session, persist_refreshed_token
from app.api.schemas.vapi import VapiResponse, VapiWebhookRequest
from app.core.config import settings
from app.models.scheduling import BookingRequest, Err, ErrorCode, SlotRequest
from app.models.tenant import Tenant
from app.services import lead_scoring
from app.services.booking_service import availability_window, book_from_voice, find_available_slots
from app.services.calendar_client import CalendarError, CalendarNotConnectedError, GoogleCalendarClient
from app.services.date_parser import resolve_date
from app.services.notification_service import notify_booking
from app.services.tenant_service import tenant_business_hours
from app.services.voice_responses import CONFIDENCE, format_spoken_time, generate_response

logger = logging.getLogger(__name__)
router = APIRouter(tags=["vapi"])


@dataclass
class CallContext:
    tenant: Tenant
    session: AsyncSession
    background_tasks: BackgroundTasks
    calendar_factory: Callable[[Tenant], GoogleCalendarClient]
    ai_employee: str
    now: datetime


def _int_param(params: dict[str, Any], key: str, default: int, low: int, high: int) -> int:
    """Voice platforms send numbers as strings or not at all; clamp to a sane range."""
    try:
        value = int(params.get(key, default))
    except (TypeError, ValueError):
        value = default
    return max(low, min(value, high))


def _reply(scenario: str, data: dict[str, Any] | None = None, **params: Any) -> VapiResponse:
    return VapiResponse(response=generate_response(scenario, **params), data=data)


async def check_availability(ctx: CallContext, params: dict[str, Any]) -> VapiResponse:
    tenant = ctx.tenant
    duration = _int_param(
        params, "duration", settings.default_duration_minutes,
        settings.min_duration_minutes, settings.max_duration_minutes,
    )
    count = _int_param(params, "count", settings.default_slot_count, 1, settings.max_slot_count)
    on_date = None
    if params.get("date"):
        on_date = resolve_date(str(params["date"]), ctx.now.astimezone(ZoneInfo(tenant.timezone)))
    window_start, window_end = availability_window(ctx.now, tenant.timezone, on_date=on_date)

    calendar = ctx.calendar_factory(tenant)
    try:
        slots = await find_available_slots(
            calendar,
            SlotRequest(window_start, window_end, duration_minutes=duration, desired_count=count),
            tenant.timezone,
            tenant_business_hours(tenant),
        )
    finally:
        await persist_refreshed_token(ctx.session, tenant, calendar)

    return _reply(
        "booking_request",
        data={
            "slots": [s.to_dict() for s in slots],
            "aiEmployee": ctx.ai_employee,
            "confidence": CONFIDENCE,
        },
        available_slots=slots,
    )


def _booking_error_reply(err: Err, ctx: CallContext, customer_name: str | None) -> VapiResponse:
    data = {"error": err.code.value, "aiEmployee": ctx.ai_employee}
    if err.code in (ErrorCode.UNPARSEABLE_DATE, ErrorCode.UNPARSEABLE_TIME):
        return _reply("scheduling_error", data, customer_name=customer_name)
    if err.code == ErrorCode.OUTSIDE_HOURS:
        return _reply("outside_business_hours", data, business_hours=tenant_business_hours(ctx.tenant).label)
    if err.code == ErrorCode.WEEKEND_REQUESTED:
        return _reply("weekend_request", data, day_of_week=err.detail)
    if err.code == ErrorCode.CONFLICT:
        return _reply("slot_unavailable", data)
    return _reply("booking_failed", data)


async def book_appointment(ctx: CallContext, params: dict[str, Any]) -> VapiResponse:
    tenant = ctx.tenant
    customer_name = params.get("customerName")
    service_type = params.get("serviceType") or "appointment"
    duration = _int_param(
        params, "duration", settings.default_duration_minutes,
        settings.min_duration_minutes, settings.max_duration_minutes,
    )

    calendar = ctx.calendar_factory(tenant)
    try:
        result = await book_from_voice(
            calendar,
            date_phrase=params.get("date"),
            time_phrase=params.get("time"),
            duration_minutes=duration,
            customer_name=customer_name,
            customer_phone=params.get("customerPhone"),
            customer_email=params.get("customerEmail"),
            service_type=service_type,
            timezone=tenant.timezone,
            now=ctx.now,
            hours=tenant_business_hours(tenant),
            attendees=[tenant.email],
            booked_by=ctx.ai_employee,
        )
    except CalendarError as e:
        logger.warning("Voice booking failed for tenant %s: %s", tenant.id, e)
        return _reply("booking_failed", {"error": "calendar_error", "aiEmployee": ctx.ai_employee})
    finally:
        await persist_refreshed_token(ctx.session, tenant, calendar)

    if isinstance(result, Err):
        logger.info("Voice booking rejected for tenant %s: %s %s", tenant.id, result.code, result.detail)
        return _booking_error_reply(result, ctx, customer_name)

    record = result.value
    confirmation_time = format_spoken_time(record.start.astimezone(ZoneInfo(tenant.timezone)))
    booking = BookingRequest(
        start=record.start,
        end=record.end,
        customer_name=customer_name,
        customer_phone=params.get("customerPhone"),
        customer_email=params.get("customerEmail"),
        service_type=service_type,
    )
    ctx.background_tasks.add_task(
        notify_booking,
        record=record,
        booking=booking,
        confirmation_time=confirmation_time,
        owner_phone=tenant.phone,
        owner_email=tenant.email,
    )
    return _reply(
        "booking_success",
        data={
            "appointmentId": record.id,
            "appointmentTime": confirmation_time,
            "htmlLink": record.html_link,
            "customerName": customer_name,
            "serviceType": service_type,
            "aiEmployee": ctx.ai_employee,
            "confidence": CONFIDENCE,
        },
        service_type=service_type,
        confirmation_time=confirmation_time,
    )


async def get_business_hours(ctx: CallContext, params: dict[str, Any]) -> VapiResponse:
    schedule = tenant_business_hours(ctx.tenant).weekly_schedule()
    return _reply(
        "business_hours_inquiry",
        data={"businessHours": schedule, "timezone": ctx.tenant.timezone, "aiEmployee": ctx.ai_employee},
        business_hours=schedule,
    )


async def handle_complaint(ctx: CallContext, params: dict[str, Any]) -> VapiResponse:
    severity = params.get("severity") or "medium"
    issue = params.get("issue")
    logger.warning(
        "Complaint for tenant %s from %s (severity=%s): %s",
        ctx.tenant.id, params.get("customerName") or "unknown caller", severity, issue,
    )
    return _reply(
        "complaint",
        data={
            "ticketId": f"COMP_{int(time.time() * 1000)}",
            "severity": severity,
            "escalationNeeded": severity == "high",
            "followUpScheduled": True,
            "aiEmployee": ctx.ai_employee,
        },
        issue=issue,
        severity=severity,
    )


async def qualify_lead(ctx: CallContext, params: dict[str, Any]) -> VapiResponse:
    business_type = params.get("businessType")
    current_size = params.get("currentSize")
    score = lead_scoring.score_lead(
        business_type, current_size, params.get("painPoint"), params.get("budget"), params.get("timeline")
    )
    logger.info("Lead qualified for tenant %s: score=%s", ctx.tenant.id, score)
    return _reply(
        "lead_qualification",
        data={
            "leadId": f"LEAD_{int(time.time() * 1000)}",
            "leadScore": score,
            "qualification": lead_scoring.qualification(score),
            "nextSteps": lead_scoring.next_steps(score),
            "estimatedValue": lead_scoring.estimated_value(business_type, current_size),
            "aiEmployee": ctx.ai_employee,
        },
        lead_score=score,
        customer_name=params.get("customerName"),
    )


FUNCTIONS: dict[str, Callable[[CallContext, dict[str, Any]], Awaitable[VapiResponse]]] = {
    "checkAvailability": check_availability,
    "bookAppointment": book_appointment,
    "getBusinessHours": get_business_hours,
    "handleComplaint": handle_complaint,
    "qualifyLead": qualify_lead,
}


@router.post("/vapi-webhook", response_model=VapiResponse, response_model_exclude_none=True)
async def vapi_webhook(
    body: VapiWebhookRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    tenant: Tenant = Depends(get_current_tenant),
    calendar_factory: Callable[[Tenant], GoogleCalendarClient] = Depends(get_calendar_factory),
) -> VapiResponse:
    """Function calls from the voice assistant. Always 200 so the assistant can keep talking."""
    logger.info("Vapi webhook: tenant=%s function=%s", tenant.id, body.function_name)
    handler = FUNCTIONS.get(body.function_name or "")
    if handler is None:
        return VapiResponse(response=generate_response("general_inquiry"))
    ctx = CallContext(
        tenant=tenant,
        session=session,
        background_tasks=background_tasks,
        calendar_factory=calendar_factory,
        ai_employee=body.ai_employee,
        now=datetime.now(UTC),
    )
    try:
        return await handler(ctx, body.parameters or {})
    except CalendarNotConnectedError as e:
        logger.warning("Vapi %s for tenant %s without a calendar: %s", body.function_name, tenant.id, e)
    except Exception as e:
        logger.exception("Vapi %s failed for tenant %s: %s", body.function_name, tenant.id, e)
    return _reply("technical_difficulty", {"aiEmployee": body.ai_employee})
