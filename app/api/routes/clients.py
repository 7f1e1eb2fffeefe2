import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_tenant
from app.api.schemas.clients import (
    ClientCreateRequest,
    ClientCreateResponse,
    ClientCredentials,
    ClientSummary,
)
from app.core.db import get_session
from app.models.tenant import Tenant, TenantCreate, TenantPublic
from app.services.tenant_service import create_tenant, tenant_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=ClientCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> ClientCreateResponse:
    hours = body.working_hours
    data = TenantCreate(
        business_name=body.business_name,
        business_type=body.business_type,
        owner_name=body.owner_name,
        email=body.email,
        phone=body.phone,
        password=body.password,
        address=body.address,
        description=body.description,
        services=body.services,
        timezone=body.time_zone,
        business_start_hour=hours.start_hour if hours else None,
        business_end_hour=hours.end_hour if hours else None,
    )
    created = await create_tenant(session, data)
    if not created:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A client with this email already exists",
        )
    tenant, api_token = created
    logger.info("Client created: id=%s business=%s", tenant.id, tenant.name)
    return ClientCreateResponse(
        client=ClientSummary(
            id=tenant.id,
            business_name=tenant.name,
            owner_name=tenant.owner_name,
            email=tenant.email,
            status=tenant.status,
        ),
        credentials=ClientCredentials(api_key=tenant.api_key, jwt_token=api_token),
    )


@router.get("/me", response_model=TenantPublic)
async def me(tenant: Tenant = Depends(get_current_tenant)) -> TenantPublic:
    return tenant_to_public(tenant)
