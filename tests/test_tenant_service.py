import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from app.core.config import settings
from app.services.google_auth_service import exchange_code_for_tokens
from app.services.tenant_service import tenant_business_hours, tenant_to_public


def test_tenant_to_public(tenant) -> None:
    public = tenant_to_public(tenant)

    assert public.business_name == "Bright Smile Dental"
    assert public.services == ["cleaning", "whitening"]
    assert public.calendar_connected is True


def test_calendar_connected_needs_credentials_and_token(tenant_factory) -> None:
    assert tenant_factory(google_token=None).calendar_connected is False
    assert tenant_factory(google_credentials=None).calendar_connected is False


def test_tenant_business_hours(tenant_factory) -> None:
    hours = tenant_business_hours(tenant_factory(business_start_hour=7, business_end_hour=19))

    assert hours.label == "7 AM to 7 PM"
    assert hours.closed_weekdays == (5, 6)


def test_exchange_code_requires_configuration() -> None:
    assert asyncio.run(exchange_code_for_tokens("code")) is None


def test_exchange_code_adds_expiry_date(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "google_client_id", "client-id")
    monkeypatch.setattr(settings, "google_client_secret", "client-secret")
    monkeypatch.setattr(settings, "google_redirect_uri", "http://localhost:4000/api/v1/auth/google/callback")
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"access_token": "ya29", "refresh_token": "1//r", "expires_in": 3599})

    tokens = asyncio.run(exchange_code_for_tokens("auth-code", transport=httpx.MockTransport(handler)))

    assert tokens["access_token"] == "ya29"
    assert tokens["expiry_date"] > 0
    assert captured["form"]["grant_type"] == ["authorization_code"]
    assert captured["form"]["code"] == ["auth-code"]
