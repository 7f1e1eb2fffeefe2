import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.core.config import settings
from app.models.scheduling import AppointmentRecord, BookingRequest
from app.services.email_service import (
    build_customer_confirmation_html,
    build_owner_alert_html,
    send_email,
)
from app.services.sms_service import send_sms

logger = logging.getLogger(__name__)


async def notify_booking(
    record: AppointmentRecord,
    booking: BookingRequest,
    confirmation_time: str,
    owner_phone: str | None = None,
    owner_email: str | None = None,
) -> dict[str, bool]:
    """Alert the business owner and confirm to the customer after a booking.

    Runs as a background task: failures are logged and never affect the booking.
    """
    customer = booking.customer_name or "Customer"
    service = booking.service_type or "appointment"
    phone = booking.customer_phone or ""
    assistant = settings.assistant_name.capitalize()
    owner_phone = owner_phone or settings.owner_alert_phone
    owner_email = owner_email or settings.owner_alert_email
    summary = {"owner_sms": False, "owner_email": False, "customer_sms": False, "customer_email": False}
    sends: dict[str, Callable[[], Awaitable[bool]]] = {}

    if owner_phone:
        sends["owner_sms"] = lambda: send_sms(
            owner_phone,
            f"NEW BOOKING ALERT!\n\nCustomer: {customer}\nPhone: {phone or 'not provided'}\n"
            f"Service: {service}\nTime: {confirmation_time}\n\nBooked by {assistant} AI",
        )
    if owner_email:
        sends["owner_email"] = lambda: asyncio.to_thread(
            send_email,
            owner_email,
            f"New booking alert - {customer}",
            build_owner_alert_html(customer, phone, service, confirmation_time, record.id, record.html_link),
            f"NEW BOOKING ALERT!\n\nCustomer: {customer}\nPhone: {phone}\nService: {service}\n"
            f"Time: {confirmation_time}\nConfirmation: {record.id}\n\nView calendar: {record.html_link}",
        )
    if phone:
        sends["customer_sms"] = lambda: send_sms(
            phone,
            f"Hi {customer}! Your {service} appointment is confirmed for {confirmation_time}.\n\n"
            f"Confirmation: {record.id}\n\nWe'll see you then!\n{assistant} AI Assistant",
        )
    if booking.customer_email:
        sends["customer_email"] = lambda: asyncio.to_thread(
            send_email,
            booking.customer_email,
            f"Appointment Confirmed - {service}",
            build_customer_confirmation_html(customer, service, confirmation_time, record.id),
            f"Hi {customer}!\n\nYour {service} appointment is confirmed for {confirmation_time}.\n\n"
            f"Confirmation: {record.id}",
        )

    # Channels fail independently
    for channel, send in sends.items():
        try:
            summary[channel] = await send()
        except Exception as e:
            logger.exception("Notification %s failed for event %s: %s", channel, record.id, e)

    logger.info("Notification summary for event %s: %s", record.id, summary)
    return summary
