import logging
from collections.abc import Callable

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.security import decode_access_token, decode_api_token
from app.models.tenant import Tenant
from app.services.calendar_client import CalendarNotConnectedError, GoogleCalendarClient
from app.services.tenant_service import get_tenant_by_id, save_google_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def refresh_header(x_refresh_token: str | None = Header(default=None, alias="X-Refresh-Token")) -> str | None:
    """Extract X-Refresh-Token header for logout/refresh endpoints."""
    return x_refresh_token


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_tenant(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Tenant:
    """Accepts either a long-lived API token or a dashboard access token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Missing or invalid authorization header")
    token = credentials.credentials
    tenant_id, api_key = decode_api_token(token)
    if not tenant_id:
        tenant_id = decode_access_token(token)
    if not tenant_id:
        raise _unauthorized("Invalid or expired token")
    try:
        tid = int(tenant_id)
    except ValueError:
        raise _unauthorized("Invalid token")
    tenant = await get_tenant_by_id(session, tid)
    if not tenant:
        raise _unauthorized("Tenant not found")
    # Rotating the stored api_key revokes every API token issued before it
    if api_key is not None and api_key != tenant.api_key:
        raise _unauthorized("API key has been revoked")
    if tenant.status != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant is not active")
    return tenant


def get_calendar_client(tenant: Tenant = Depends(get_current_tenant)) -> GoogleCalendarClient:
    try:
        return GoogleCalendarClient.from_tenant(tenant)
    except CalendarNotConnectedError as e:
        logger.info("Calendar not connected for tenant %s: %s", tenant.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google Calendar integration not configured. Visit /api/v1/auth/google to connect it.",
        ) from e


async def persist_refreshed_token(session: AsyncSession, tenant: Tenant, calendar: object) -> None:
    """Save the tenant's Google token if the client had to refresh it."""
    if getattr(calendar, "token_refreshed", False):
        await save_google_token(session, tenant, calendar.token)


def get_calendar_factory() -> Callable[[Tenant], GoogleCalendarClient]:
    """Deferred client construction for the voice webhook, which answers 200 even without a calendar."""
    return GoogleCalendarClient.from_tenant
