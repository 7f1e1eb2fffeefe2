import logging
import time
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.models.scheduling import AppointmentInsertCommand, AppointmentRecord, BusyInterval
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class CalendarError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CalendarNotConnectedError(CalendarError):
    pass


def _parse_google_datetime(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


class GoogleCalendarClient:
    """Google Calendar v3 client bound to one tenant's OAuth token.

    Built per request so credentials never leak between tenants. When Google
    answers 401 and a refresh token is available the access token is
    refreshed once and the call retried; `token_refreshed` tells the caller to
    persist `token`.
    """

    def __init__(
        self,
        *,
        token: dict[str, Any],
        client_id: str = "",
        client_secret: str = "",
        calendar_id: str = "primary",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = dict(token)
        self.client_id = client_id
        self.client_secret = client_secret
        self.calendar_id = calendar_id
        self.timeout_seconds = timeout_seconds
        self.token_refreshed = False
        self._transport = transport

    @classmethod
    def from_tenant(cls, tenant: Tenant, transport: httpx.AsyncBaseTransport | None = None) -> "GoogleCalendarClient":
        if not tenant.calendar_connected:
            raise CalendarNotConnectedError("Google Calendar is not connected for this tenant")
        creds = tenant.google_credentials.get("web") or tenant.google_credentials.get("installed")
        if not creds:
            raise CalendarNotConnectedError("Invalid credentials structure")
        return cls(
            token=tenant.google_token,
            client_id=creds.get("client_id", ""),
            client_secret=creds.get("client_secret", ""),
            calendar_id=settings.calendar_id,
            timeout_seconds=settings.http_timeout_seconds,
            transport=transport,
        )

    async def free_busy(
        self, start: datetime, end: datetime, timezone: str | None = None
    ) -> list[BusyInterval]:
        body: dict[str, Any] = {
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "items": [{"id": self.calendar_id}],
        }
        if timezone:
            body["timeZone"] = timezone
        data = await self._request("POST", "/freeBusy", json=body)
        calendar = data.get("calendars", {}).get(self.calendar_id, {})
        if calendar.get("errors"):
            reasons = ", ".join(e.get("reason", "unknown") for e in calendar["errors"])
            raise CalendarError(f"Google free/busy error: {reasons}")
        return [
            BusyInterval(start=_parse_google_datetime(b["start"]), end=_parse_google_datetime(b["end"]))
            for b in calendar.get("busy", [])
        ]

    async def insert_event(self, command: AppointmentInsertCommand) -> AppointmentRecord:
        path = f"/calendars/{quote(self.calendar_id, safe='')}/events"
        data = await self._request("POST", path, json=command.to_event_body())
        event_id = data.get("id")
        if not event_id:
            raise CalendarError("Google Calendar create event response missing id")
        logger.info("Created event %s on calendar %s", event_id, self.calendar_id)
        return AppointmentRecord(
            id=event_id,
            html_link=data.get("htmlLink", ""),
            start=command.start,
            end=command.end,
        )

    def _can_refresh(self) -> bool:
        return bool(self.token.get("refresh_token") and self.client_id and self.client_secret)

    def _token_expired(self) -> bool:
        expiry_ms = self.token.get("expiry_date")
        return bool(expiry_ms) and time.time() * 1000 >= float(expiry_ms)

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            try:
                if self._token_expired() and self._can_refresh():
                    logger.info("Google access token expired, refreshing before request")
                    await self._refresh_access_token(client)
                resp = await self._send(client, method, path, json)
                if resp.status_code == 401 and self._can_refresh():
                    await self._refresh_access_token(client)
                    resp = await self._send(client, method, path, json)
            except httpx.HTTPError as e:
                raise CalendarError(f"Google Calendar API connection error: {e}") from e
        if resp.status_code >= 400:
            logger.warning(
                "Google Calendar API error: %s %s status=%s body=%s",
                method, path, resp.status_code, resp.text[:500],
            )
            raise CalendarError(f"Google Calendar API HTTP {resp.status_code}", status_code=resp.status_code)
        return resp.json()

    async def _send(self, client: httpx.AsyncClient, method: str, path: str, json: dict | None) -> httpx.Response:
        return await client.request(
            method,
            f"{GOOGLE_CALENDAR_API}{path}",
            json=json,
            headers={"Authorization": f"Bearer {self.token.get('access_token', '')}"},
        )

    async def _refresh_access_token(self, client: httpx.AsyncClient) -> None:
        resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.token["refresh_token"],
                "grant_type": "refresh_token",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if resp.status_code != 200:
            logger.warning("Google token refresh failed: status=%s body=%s", resp.status_code, resp.text[:500])
            raise CalendarError("Calendar credentials need to be refreshed", status_code=401)
        payload = resp.json()
        if not payload.get("access_token"):
            logger.warning("Google token refresh response missing access_token")
            raise CalendarError("Calendar credentials need to be refreshed", status_code=401)
        self.token["access_token"] = payload["access_token"]
        if "expires_in" in payload:
            self.token["expiry_date"] = int((time.time() + payload["expires_in"]) * 1000)
        if payload.get("refresh_token"):
            self.token["refresh_token"] = payload["refresh_token"]
        self.token_refreshed = True
        logger.info("Google access token refreshed")
