from app.models.tenant import Tenant, TenantCreate, TenantPublic
from app.models.refresh_token import RefreshToken

__all__ = [
    "Tenant",
    "TenantCreate",
    "TenantPublic",
    "RefreshToken",
]
