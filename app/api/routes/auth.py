import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_tenant, refresh_header
from app.api.schemas.auth import AuthorizationUrl, LoginRequest, RefreshRequest, TokenPair
from app.core.config import settings
from app.core.db import get_session
from app.core.security import create_oauth_state, decode_oauth_state, decode_refresh_token
from app.models.tenant import Tenant
from app.services.google_auth_service import (
    exchange_code_for_tokens,
    get_calendar_authorization_url,
    oauth_client_credentials,
)
from app.services.tenant_service import (
    get_tenant_by_id,
    login_tenant,
    refresh_tokens,
    revoke_refresh_token,
    save_google_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenPair)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenPair:
    pair = await login_tenant(session, body.email, body.password)
    if not pair:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    _, access, refresh, expires_in = pair
    return TokenPair(access_token=access, refresh_token=refresh, expires_in=expires_in)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    session: AsyncSession = Depends(get_session),
    x_refresh_token: str | None = Depends(refresh_header),
    body: RefreshRequest | None = None,
) -> TokenPair:
    token = x_refresh_token or (body.refresh_token if body else None)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required (header X-Refresh-Token or body refresh_token)",
        )
    pair = await refresh_tokens(session, token)
    if not pair:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    _, access, refresh_token, expires_in = pair
    return TokenPair(access_token=access, refresh_token=refresh_token, expires_in=expires_in)


@router.post("/logout")
async def logout(
    session: AsyncSession = Depends(get_session),
    x_refresh_token: str | None = Depends(refresh_header),
    body: RefreshRequest | None = None,
) -> dict:
    token = x_refresh_token or (body.refresh_token if body else None)
    if token:
        _, jti = decode_refresh_token(token)
        if jti:
            await revoke_refresh_token(session, jti)
    return {"message": "Logged out"}


# --- Google Calendar connect ---


@router.get("/google", response_model=AuthorizationUrl)
async def google_connect(tenant: Tenant = Depends(get_current_tenant)) -> AuthorizationUrl:
    """Consent URL for connecting the tenant's Google Calendar."""
    if not settings.google_oauth_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth is not configured on this server",
        )
    return AuthorizationUrl(authorization_url=get_calendar_authorization_url(create_oauth_state(tenant.id)))


@router.get("/google/callback")
async def google_callback(
    code: str = Query(...),
    state: str = Query(...),
    session: AsyncSession = Depends(get_session),
) -> dict:
    tenant_id = decode_oauth_state(state)
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired state",
        )
    tenant = await get_tenant_by_id(session, int(tenant_id))
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

    tokens = await exchange_code_for_tokens(code)
    if not tokens:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to exchange code with Google. Check GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, and GOOGLE_REDIRECT_URI match Google Console.",
        )
    if not tokens.get("refresh_token"):
        # Without it the calendar stops working once the access token expires
        logger.warning("Google did not return a refresh token for tenant %s", tenant.id)

    await save_google_token(session, tenant, tokens, credentials=oauth_client_credentials())
    logger.info("Google Calendar connected for tenant %s", tenant.id)
    return {"message": "Google Calendar connected", "calendarConnected": True}
