from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from app.models.scheduling import BusyInterval
from app.services.calendar_client import CalendarError

TZ = ZoneInfo("America/Los_Angeles")


def _next_monday() -> date:
    today = datetime.now(TZ).date()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=TZ)


def test_availability_returns_business_hour_slots(api) -> None:
    response = api.get("/api/v1/get-availability")

    assert response.status_code == 200
    slots = response.json()["slots"]
    assert len(slots) == 3
    for slot in slots:
        start = datetime.fromisoformat(slot["start"]).astimezone(TZ)
        end = datetime.fromisoformat(slot["end"]).astimezone(TZ)
        assert end - start == timedelta(minutes=30)
        assert start.weekday() < 5
        assert 9 <= start.hour and end <= _at(start.date(), 17)


def test_availability_for_a_given_date(api) -> None:
    monday = _next_monday()

    response = api.get("/api/v1/get-availability", params={"date": monday.isoformat(), "duration": 60, "count": 2})

    assert response.status_code == 200
    starts = [datetime.fromisoformat(s["start"]) for s in response.json()["slots"]]
    assert starts == [_at(monday, 9), _at(monday, 9, 30)]


def test_availability_skips_busy_time(api, fake_calendar) -> None:
    monday = _next_monday()
    fake_calendar.busy = [BusyInterval(_at(monday, 9), _at(monday, 12))]

    response = api.get("/api/v1/get-availability", params={"date": monday.isoformat(), "count": 1})

    assert datetime.fromisoformat(response.json()["slots"][0]["start"]) == _at(monday, 12)


@pytest.mark.parametrize("params", [{"duration": 10}, {"duration": 241}, {"count": 0}, {"count": 11}])
def test_availability_rejects_out_of_range_params(api, params) -> None:
    assert api.get("/api/v1/get-availability", params=params).status_code == 400


@pytest.mark.parametrize("status_code,expected", [(401, 401), (500, 502), (None, 502)])
def test_calendar_failures_map_to_http_errors(api, fake_calendar, monkeypatch, status_code, expected) -> None:
    async def _fail(*args, **kwargs):
        raise CalendarError("boom", status_code=status_code)

    monkeypatch.setattr(fake_calendar, "free_busy", _fail)

    assert api.get("/api/v1/get-availability").status_code == expected


def test_book_appointment(api, fake_calendar, notifications, tenant) -> None:
    start = _at(_next_monday(), 10)

    response = api.post(
        "/api/v1/book-appointment",
        json={
            "start": start.isoformat(),
            "end": (start + timedelta(minutes=45)).isoformat(),
            "summary": "Cleaning",
            "customerName": "Ana Lopez",
            "customerPhone": "702-555-0101",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "eventId": "evt-123",
        "htmlLink": "https://calendar.google.com/event?eid=evt-123",
    }
    command = fake_calendar.inserted[0]
    assert command.summary == "Cleaning"
    assert "Customer: Ana Lopez" in command.description
    assert len(notifications) == 1
    assert notifications[0]["booking"].customer_name == "Ana Lopez"
    assert notifications[0]["owner_email"] == tenant.email


def test_book_appointment_conflict(api, fake_calendar, notifications) -> None:
    start = _at(_next_monday(), 10)
    fake_calendar.busy = [BusyInterval(start, start + timedelta(hours=1))]

    response = api.post(
        "/api/v1/book-appointment",
        json={"start": start.isoformat(), "end": (start + timedelta(minutes=30)).isoformat()},
    )

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "conflict"
    assert fake_calendar.inserted == []
    assert notifications == []


@pytest.mark.parametrize(
    "body,error",
    [
        ({"start": "tomorrow", "end": "later"}, "invalid_format"),
        ({}, "invalid_format"),
        ({"start": "2020-01-01T10:00:00Z", "end": "2020-01-01T10:30:00Z"}, "past_date"),
    ],
)
def test_book_appointment_validation_errors(api, body, error) -> None:
    response = api.post("/api/v1/book-appointment", json=body)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == error


def test_book_appointment_rejects_short_duration(api) -> None:
    start = _at(_next_monday(), 10)

    response = api.post(
        "/api/v1/book-appointment",
        json={"start": start.isoformat(), "end": (start + timedelta(minutes=10)).isoformat()},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_duration"


def test_calendar_endpoints_require_auth(api) -> None:
    from app.api.deps import get_current_tenant
    from app.main import app

    app.dependency_overrides.pop(get_current_tenant)

    assert api.get("/api/v1/get-availability").status_code == 401
    assert api.post("/api/v1/book-appointment", json={}).status_code == 401
