import logging
import time
from urllib.parse import urlencode

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]


def get_calendar_authorization_url(state: str) -> str:
    """Consent URL; offline + consent so Google always returns a refresh token."""
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": " ".join(CALENDAR_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def oauth_client_credentials() -> dict:
    """Client block stored on the tenant, in Google's downloaded-JSON shape."""
    return {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }


async def exchange_code_for_tokens(
    code: str, transport: httpx.AsyncBaseTransport | None = None
) -> dict | None:
    if not settings.google_oauth_enabled:
        logger.warning("Google OAuth not configured (GOOGLE_CLIENT_ID/SECRET/REDIRECT_URI)")
        return None
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds, transport=transport) as client:
        resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": settings.google_redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if resp.status_code != 200:
            logger.warning(
                "Google token exchange failed: status=%s body=%s redirect_uri=%s",
                resp.status_code,
                resp.text[:500],
                settings.google_redirect_uri,
            )
            return None
        tokens = resp.json()
    # Store expiry the way the calendar client reads it (epoch milliseconds)
    if "expires_in" in tokens:
        tokens["expiry_date"] = int((time.time() + tokens["expires_in"]) * 1000)
    return tokens
