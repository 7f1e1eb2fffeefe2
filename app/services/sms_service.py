import logging

import httpx

from app.core.config import settings
from app.core.logging import mask

logger = logging.getLogger(__name__)

TWILIO_API = "https://api.twilio.com/2010-04-01"


def normalize_phone(phone: str, default_country_code: str = "1") -> str | None:
    """Best-effort E.164: '702-776-0084' -> '+17027760084'."""
    if not phone:
        return None
    if phone.strip().startswith("+"):
        digits = "".join(c for c in phone if c.isdigit())
        return f"+{digits}" if digits else None
    digits = "".join(c for c in phone if c.isdigit())
    if len(digits) == 10:
        return f"+{default_country_code}{digits}"
    if len(digits) == 11 and digits.startswith(default_country_code):
        return f"+{digits}"
    return None


async def send_sms(
    to_phone: str, body: str, transport: httpx.AsyncBaseTransport | None = None
) -> bool:
    """Send an SMS through the Twilio Messages API. Returns False instead of raising."""
    to = normalize_phone(to_phone)
    if not to:
        logger.warning("SMS skipped: invalid phone number %r", to_phone)
        return False
    if not settings.sms_enabled:
        logger.info("SMS simulation (Twilio not configured): to=%s body=%s", to, body)
        return False
    sid = settings.twilio_account_sid
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds, transport=transport) as client:
            resp = await client.post(
                f"{TWILIO_API}/Accounts/{sid}/Messages.json",
                auth=(sid, settings.twilio_auth_token),
                data={"To": to, "From": settings.twilio_from_number, "Body": body},
            )
    except httpx.HTTPError as e:
        logger.exception("Twilio request failed for account %s: %s", mask(sid), e)
        return False
    if resp.status_code not in (200, 201):
        logger.warning("Twilio rejected SMS to %s: status=%s body=%s", to, resp.status_code, resp.text[:500])
        return False
    logger.info("SMS sent to %s sid=%s", to, resp.json().get("sid"))
    return True
