from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import (
    create_access_token,
    create_api_token,
    create_refresh_token,
    decode_refresh_token,
    generate_api_key,
    hash_password,
    verify_password,
)
from app.models.refresh_token import RefreshToken
from app.models.tenant import Tenant, TenantCreate, TenantPublic
from app.services.business_hours import BusinessHours


def _utc_naive() -> datetime:
    """Naive UTC datetime for DB columns that are TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


async def get_tenant_by_email(session: AsyncSession, email: str) -> Tenant | None:
    result = await session.execute(select(Tenant).where(Tenant.email == email.lower()))
    return result.scalar_one_or_none()


async def get_tenant_by_id(session: AsyncSession, tenant_id: int) -> Tenant | None:
    result = await session.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalar_one_or_none()


async def create_tenant(session: AsyncSession, data: TenantCreate) -> tuple[Tenant, str] | None:
    """Onboard a business. Returns (tenant, api_token) or None if the email is taken."""
    if await get_tenant_by_email(session, data.email):
        return None
    tenant = Tenant(
        name=data.business_name,
        business_type=data.business_type or "service",
        owner_name=data.owner_name,
        email=data.email.lower(),
        phone=data.phone,
        address=data.address or "",
        description=data.description or "",
        services=data.services or [],
        timezone=data.timezone or settings.default_timezone,
        business_start_hour=data.business_start_hour if data.business_start_hour is not None else settings.business_start_hour,
        business_end_hour=data.business_end_hour if data.business_end_hour is not None else settings.business_end_hour,
        api_key=generate_api_key(),
        hashed_password=hash_password(data.password) if data.password else None,
    )
    session.add(tenant)
    await session.flush()
    await session.refresh(tenant)
    return tenant, create_api_token(tenant.id, tenant.api_key)


def tenant_to_public(tenant: Tenant) -> TenantPublic:
    return TenantPublic(
        id=tenant.id,
        business_name=tenant.name,
        business_type=tenant.business_type,
        owner_name=tenant.owner_name,
        email=tenant.email,
        phone=tenant.phone,
        address=tenant.address,
        description=tenant.description,
        services=tenant.services or [],
        timezone=tenant.timezone,
        business_start_hour=tenant.business_start_hour,
        business_end_hour=tenant.business_end_hour,
        status=tenant.status,
        calendar_connected=tenant.calendar_connected,
        created_at=tenant.created_at,
    )


def tenant_business_hours(tenant: Tenant) -> BusinessHours:
    return BusinessHours(start_hour=tenant.business_start_hour, end_hour=tenant.business_end_hour)


async def save_google_token(
    session: AsyncSession, tenant: Tenant, token: dict, credentials: dict | None = None
) -> None:
    # JSON columns are replaced wholesale so SQLAlchemy sees the change
    tenant.google_token = dict(token)
    if credentials is not None:
        tenant.google_credentials = dict(credentials)
    tenant.updated_at = _utc_naive()
    session.add(tenant)
    await session.flush()


def make_token_pair(tenant_id: int) -> tuple[str, str, int]:
    access = create_access_token(tenant_id)
    refresh = create_refresh_token(tenant_id)
    expires_in = settings.access_token_expire_minutes * 60
    return access, refresh, expires_in


async def store_refresh_token(session: AsyncSession, tenant_id: int, refresh_token: str) -> None:
    tenant_id_str, jti = decode_refresh_token(refresh_token)
    if not tenant_id_str or not jti:
        return
    expires_at = _utc_naive() + timedelta(days=settings.refresh_token_expire_days)
    session.add(RefreshToken(tenant_id=tenant_id, jti=jti, expires_at=expires_at))
    await session.flush()


async def login_tenant(
    session: AsyncSession, email: str, password: str
) -> tuple[Tenant, str, str, int] | None:
    tenant = await get_tenant_by_email(session, email)
    if not tenant or not tenant.hashed_password:
        return None
    if not verify_password(password, tenant.hashed_password):
        return None
    access, refresh, expires_in = make_token_pair(tenant.id)
    await store_refresh_token(session, tenant_id=tenant.id, refresh_token=refresh)
    return tenant, access, refresh, expires_in


async def revoke_refresh_token(session: AsyncSession, jti: str) -> None:
    result = await session.execute(select(RefreshToken).where(RefreshToken.jti == jti))
    row = result.scalar_one_or_none()
    if row:
        row.revoked = True
        session.add(row)


async def refresh_tokens(
    session: AsyncSession, refresh_token: str
) -> tuple[Tenant, str, str, int] | None:
    tenant_id_str, jti = decode_refresh_token(refresh_token)
    if not tenant_id_str or not jti:
        return None
    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.jti == jti,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > _utc_naive(),
        )
    )
    token_row = result.scalar_one_or_none()
    if not token_row:
        return None
    tenant = await get_tenant_by_id(session, int(tenant_id_str))
    if not tenant:
        return None
    token_row.revoked = True
    session.add(token_row)
    access, refresh, expires_in = make_token_pair(tenant.id)
    await store_refresh_token(session, tenant_id=tenant.id, refresh_token=refresh)
    return tenant, access, refresh, expires_in
