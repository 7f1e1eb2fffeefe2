from datetime import UTC, datetime, timedelta

import pytest

from app.api.deps import get_calendar_factory
from app.main import app
from app.models.scheduling import BusyInterval
from app.services.calendar_client import CalendarNotConnectedError
from app.services.voice_responses import DEFAULT_REPLY, TECHNICAL_DIFFICULTY


def _call(api, function: str | None, **parameters):
    response = api.post("/vapi-webhook", json={"function": function, "parameters": parameters})
    assert response.status_code == 200
    return response.json()


def test_get_business_hours(api) -> None:
    body = _call(api, "getBusinessHours")

    assert "Monday through Friday" in body["response"]
    assert body["data"]["businessHours"]["monday"] == {"open": "09:00", "close": "17:00"}
    assert body["data"]["businessHours"]["saturday"] == {"closed": True}


def test_check_availability_offers_three_slots(api) -> None:
    body = _call(api, "checkAvailability")

    assert len(body["data"]["slots"]) == 3
    assert body["response"].startswith("I have availability at:")
    assert body["data"]["confidence"] == 0.95


def test_check_availability_honours_count_and_duration_strings(api) -> None:
    body = _call(api, "checkAvailability", count="2", duration="60")

    slots = body["data"]["slots"]
    assert len(slots) == 2
    start = datetime.fromisoformat(slots[0]["start"])
    end = datetime.fromisoformat(slots[0]["end"])
    assert end - start == timedelta(minutes=60)


def test_book_appointment_by_voice(api, fake_calendar, notifications, tenant) -> None:
    body = _call(
        api,
        "bookAppointment",
        date="next monday",
        time="10am",
        customerName="Ana Lopez",
        customerPhone="702-555-0101",
        serviceType="cleaning",
    )

    assert body["data"]["appointmentId"] == "evt-123"
    assert "cleaning" in body["response"]
    assert "at 10:00 AM" in body["data"]["appointmentTime"]
    command = fake_calendar.inserted[0]
    assert command.summary == "cleaning - Ana Lopez"
    assert command.attendees == [tenant.email]
    assert "Booked by: Luna AI Assistant" in command.description
    assert len(notifications) == 1
    assert notifications[0]["booking"].customer_phone == "702-555-0101"


@pytest.mark.parametrize(
    "params,error,phrase",
    [
        ({"date": "next saturday", "time": "10am"}, "weekend_requested", "Saturday"),
        ({"date": "next monday", "time": "8pm"}, "outside_hours", "9 AM to 5 PM"),
        ({"date": "someday", "time": "10am"}, "unparseable_date", "didn't quite catch"),
        ({"date": "next monday", "time": "whenever"}, "unparseable_time", "didn't quite catch"),
    ],
)
def test_book_appointment_rejections_are_spoken(api, fake_calendar, notifications, params, error, phrase) -> None:
    body = _call(api, "bookAppointment", **params)

    assert body["data"]["error"] == error
    assert phrase in body["response"]
    assert fake_calendar.inserted == []
    assert notifications == []


def test_book_appointment_conflict_is_spoken(api, fake_calendar, notifications) -> None:
    now = datetime.now(UTC)
    fake_calendar.busy = [BusyInterval(now, now + timedelta(days=30))]

    body = _call(api, "bookAppointment", date="next monday", time="10am")

    assert body["data"]["error"] == "conflict"
    assert "already been booked" in body["response"]
    assert notifications == []


def test_handle_complaint(api) -> None:
    body = _call(api, "handleComplaint", customerName="Ana", issue="a long wait", severity="high")

    assert body["data"]["ticketId"].startswith("COMP_")
    assert body["data"]["escalationNeeded"] is True
    assert "escalated" in body["response"]


def test_qualify_lead(api) -> None:
    body = _call(
        api,
        "qualifyLead",
        businessType="dental",
        currentSize=12,
        painPoint="missed_calls",
        budget=800,
        timeline="immediately",
    )

    assert body["data"]["leadScore"] == 100
    assert body["data"]["qualification"] == "hot"
    assert body["data"]["estimatedValue"] == 480
    assert "demo" in body["response"]


def test_unknown_function_gets_default_reply(api) -> None:
    body = _call(api, "orderPizza")

    assert body == {"response": DEFAULT_REPLY}


def test_missing_function_gets_default_reply(api) -> None:
    response = api.post("/vapi-webhook", json={})

    assert response.status_code == 200
    assert response.json()["response"] == DEFAULT_REPLY


def test_calendar_not_connected_still_answers(api) -> None:
    def _factory(_tenant):
        raise CalendarNotConnectedError("not connected")

    app.dependency_overrides[get_calendar_factory] = lambda: _factory

    body = _call(api, "checkAvailability")

    assert body["response"] == TECHNICAL_DIFFICULTY


def test_unexpected_errors_become_technical_difficulty(api, fake_calendar, monkeypatch) -> None:
    async def _explode(*args, **kwargs):
        raise RuntimeError("provider exploded")

    monkeypatch.setattr(fake_calendar, "free_busy", _explode)

    body = _call(api, "checkAvailability")

    assert body["response"] == TECHNICAL_DIFFICULTY
    assert body["data"]["aiEmployee"] == "luna"
