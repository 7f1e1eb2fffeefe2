import asyncio
import json
import time
from datetime import UTC, datetime

import httpx
import pytest

from app.models.scheduling import AppointmentInsertCommand
from app.services.calendar_client import CalendarError, CalendarNotConnectedError, GoogleCalendarClient

START = datetime(2025, 1, 20, 17, 0, tzinfo=UTC)
END = datetime(2025, 1, 20, 18, 0, tzinfo=UTC)

FREE_BUSY = {
    "calendars": {
        "primary": {"busy": [{"start": "2025-01-20T17:00:00Z", "end": "2025-01-20T17:30:00Z"}]},
    }
}


def _client(handler, **token) -> GoogleCalendarClient:
    return GoogleCalendarClient(
        token={"access_token": "old-token", "refresh_token": "refresh-token", **token},
        client_id="google-client-id",
        client_secret="google-client-secret",
        transport=httpx.MockTransport(handler),
    )


def test_free_busy_parses_busy_intervals() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=FREE_BUSY)

    busy = asyncio.run(_client(handler).free_busy(START, END, "America/Los_Angeles"))

    assert seen["path"] == "/calendar/v3/freeBusy"
    assert seen["body"]["items"] == [{"id": "primary"}]
    assert seen["body"]["timeZone"] == "America/Los_Angeles"
    assert len(busy) == 1
    assert busy[0].start == START
    assert busy[0].end == datetime(2025, 1, 20, 17, 30, tzinfo=UTC)


def test_refreshes_token_after_401_and_retries_once() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            calls.append("refresh")
            return httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600})
        if request.headers["Authorization"] == "Bearer old-token":
            calls.append("calendar-old")
            return httpx.Response(401, json={"error": {"message": "Invalid Credentials"}})
        calls.append("calendar-new")
        return httpx.Response(200, json=FREE_BUSY)

    client = _client(handler)
    busy = asyncio.run(client.free_busy(START, END))

    assert len(busy) == 1
    assert calls == ["calendar-old", "refresh", "calendar-new"]
    assert client.token_refreshed
    assert client.token["access_token"] == "new-token"
    assert client.token["refresh_token"] == "refresh-token"


def test_failed_refresh_raises_401_calendar_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(400, json={"error": "invalid_grant"})
        return httpx.Response(401)

    client = _client(handler)
    with pytest.raises(CalendarError) as exc_info:
        asyncio.run(client.free_busy(START, END))

    assert exc_info.value.status_code == 401
    assert not client.token_refreshed


def test_401_without_refresh_token_is_not_retried() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        return httpx.Response(401)

    client = GoogleCalendarClient(token={"access_token": "expired"}, transport=httpx.MockTransport(handler))
    with pytest.raises(CalendarError, match="HTTP 401"):
        asyncio.run(client.free_busy(START, END))

    assert calls == ["www.googleapis.com"]


def test_expired_token_is_refreshed_before_the_call() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            calls.append("refresh")
            return httpx.Response(200, json={"access_token": "new-token"})
        calls.append(request.headers["Authorization"])
        return httpx.Response(200, json=FREE_BUSY)

    client = _client(handler, expiry_date=int((time.time() - 60) * 1000))
    asyncio.run(client.free_busy(START, END))

    assert calls == ["refresh", "Bearer new-token"]


def test_connection_error_during_expired_token_refresh_raises_calendar_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler, expiry_date=1)
    with pytest.raises(CalendarError, match="connection error"):
        asyncio.run(client.free_busy(START, END))

    assert not client.token_refreshed


def test_refresh_response_without_access_token_raises_401() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"token_type": "Bearer"})
        return httpx.Response(401)

    client = _client(handler)
    with pytest.raises(CalendarError) as exc_info:
        asyncio.run(client.free_busy(START, END))

    assert exc_info.value.status_code == 401
    assert client.token["access_token"] == "old-token"
    assert not client.token_refreshed


def test_per_calendar_errors_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"calendars": {"primary": {"errors": [{"reason": "notFound"}]}}})

    with pytest.raises(CalendarError, match="notFound"):
        asyncio.run(_client(handler).free_busy(START, END))


def test_server_error_carries_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="backend error")

    with pytest.raises(CalendarError) as exc_info:
        asyncio.run(_client(handler).free_busy(START, END))

    assert exc_info.value.status_code == 503


def test_insert_event_posts_event_body() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "event-456", "htmlLink": "https://calendar.google.com/event?eid=456"})

    command = AppointmentInsertCommand(
        summary="Cleaning - Ana",
        start=START,
        end=END,
        timezone="America/Los_Angeles",
        description="Customer: Ana",
        attendees=["owner@example.com"],
        reminders=[("email", 1440), ("popup", 30)],
    )
    record = asyncio.run(_client(handler).insert_event(command))

    assert record.id == "event-456"
    assert record.html_link.endswith("eid=456")
    assert captured["path"] == "/calendar/v3/calendars/primary/events"
    assert captured["body"]["start"] == {"dateTime": START.isoformat(), "timeZone": "America/Los_Angeles"}
    assert captured["body"]["attendees"] == [{"email": "owner@example.com"}]
    assert captured["body"]["reminders"]["useDefault"] is False
    assert {"method": "popup", "minutes": 30} in captured["body"]["reminders"]["overrides"]


def test_from_tenant_requires_connected_calendar(tenant_factory) -> None:
    with pytest.raises(CalendarNotConnectedError):
        GoogleCalendarClient.from_tenant(tenant_factory(google_token=None))

    with pytest.raises(CalendarNotConnectedError):
        GoogleCalendarClient.from_tenant(tenant_factory(google_credentials={"other": {}}))

    client = GoogleCalendarClient.from_tenant(tenant_factory())
    assert client.client_id == "cid"
    assert client.calendar_id == "primary"
