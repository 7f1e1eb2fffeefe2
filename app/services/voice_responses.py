"""Spoken replies returned to the voice platform, keyed by scenario."""

from collections.abc import Sequence
from datetime import datetime

from app.models.scheduling import Slot

CONFIDENCE = 0.95

DEFAULT_REPLY = "I can help you with booking appointments. When would you like to schedule?"
TECHNICAL_DIFFICULTY = (
    "I'm experiencing some technical difficulties. Please try again in a moment "
    "or I can transfer you to someone who can help."
)


def format_spoken_time(ts: datetime) -> str:
    """'Monday, January 20, 2025 at 2:00 PM'"""
    hour = ts.hour % 12 or 12
    meridiem = "AM" if ts.hour < 12 else "PM"
    return f"{ts:%A}, {ts:%B} {ts.day}, {ts.year} at {hour}:{ts.minute:02d} {meridiem}"


def format_slot_choice(slot: Slot) -> str:
    hour = slot.start.hour % 12 or 12
    meridiem = "AM" if slot.start.hour < 12 else "PM"
    return f"{slot.start:%A} {slot.start:%B} {slot.start.day} at {hour}:{slot.start.minute:02d} {meridiem}"


def _booking_request(available_slots: Sequence[Slot] = (), **_: object) -> str:
    if not available_slots:
        return "I'm currently fully booked, but let me check for other available times."
    choices = ", ".join(format_slot_choice(s) for s in available_slots[:3])
    return f"I have availability at: {choices}. Which time works best for you?"


def _booking_success(service_type: str = "appointment", confirmation_time: str = "", **_: object) -> str:
    return (
        f"Perfect! I've booked your {service_type} for {confirmation_time}. "
        "You'll receive a confirmation shortly."
    )


def _booking_failed(**_: object) -> str:
    return "I'm sorry, I couldn't book that appointment. Would you like me to check for other available times?"


def _scheduling_error(customer_name: str | None = None, **_: object) -> str:
    name = f" {customer_name}" if customer_name else ""
    return (
        f"I'm sorry{name}, I didn't quite catch the date and time. "
        "Could you say it again, for example tomorrow at 2 PM?"
    )


def _outside_business_hours(business_hours: str = "", **_: object) -> str:
    return f"Our appointments run from {business_hours}. Could you pick a time within those hours?"


def _weekend_request(day_of_week: str = "that day", **_: object) -> str:
    return f"We're closed on {day_of_week}. Would a weekday work for you instead?"


def _slot_unavailable(**_: object) -> str:
    return "That time has already been booked. Would you like me to check other available times?"


def _business_hours_inquiry(business_hours: dict | None = None, **_: object) -> str:
    if not business_hours:
        return DEFAULT_REPLY
    open_days = [day for day, hours in business_hours.items() if not hours.get("closed")]
    if not open_days:
        return "We're not taking appointments right now."
    first = business_hours[open_days[0]]
    return (
        f"We're open {open_days[0].capitalize()} through {open_days[-1].capitalize()}, "
        f"from {first['open']} to {first['close']}. Would you like to book a time?"
    )


def _complaint(issue: str | None = None, severity: str = "medium", **_: object) -> str:
    about = f" about {issue}" if issue else ""
    if severity == "high":
        return (
            f"I'm truly sorry to hear{about}. I've escalated this right away "
            "and a manager will contact you today."
        )
    return f"I'm sorry to hear{about}. I've logged this and our team will follow up with you shortly."


def _lead_qualification(lead_score: int = 0, customer_name: str | None = None, **_: object) -> str:
    name = f", {customer_name}" if customer_name else ""
    if lead_score >= 70:
        return f"Thanks{name}! It sounds like we can really help. Could I set up a quick demo for you this week?"
    if lead_score >= 40:
        return f"Thanks{name}! I'll send over some case studies that match your business."
    return f"Thanks{name}! I'll share some helpful resources and check back in with you soon."


def _technical_difficulty(**_: object) -> str:
    return TECHNICAL_DIFFICULTY


_SCENARIOS = {
    "booking_request": _booking_request,
    "booking_success": _booking_success,
    "booking_failed": _booking_failed,
    "scheduling_error": _scheduling_error,
    "outside_business_hours": _outside_business_hours,
    "weekend_request": _weekend_request,
    "slot_unavailable": _slot_unavailable,
    "business_hours_inquiry": _business_hours_inquiry,
    "complaint": _complaint,
    "lead_qualification": _lead_qualification,
    "technical_difficulty": _technical_difficulty,
}


def generate_response(scenario: str, **params: object) -> str:
    handler = _SCENARIOS.get(scenario)
    if handler is None:
        return DEFAULT_REPLY
    return handler(**params)
