from datetime import UTC, datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class TenantBase(SQLModel):
    name: str
    business_type: str = "service"
    owner_name: str
    email: str = Field(unique=True, index=True)
    phone: str
    address: str = ""
    description: str = ""
    timezone: str = "America/Los_Angeles"
    business_start_hour: int = 9
    business_end_hour: int = 17
    status: str = "active"


class Tenant(TenantBase, table=True):
    __tablename__ = "tenants"
    id: int | None = Field(default=None, primary_key=True)
    api_key: str = Field(unique=True, index=True)
    hashed_password: str | None = None  # None until the owner sets a dashboard password
    services: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # OAuth client JSON as downloaded from Google Console ({"web": {...}} or {"installed": {...}})
    google_credentials: dict | None = Field(default=None, sa_column=Column(JSON))
    google_token: dict | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)

    @property
    def calendar_connected(self) -> bool:
        return bool(self.google_credentials and self.google_token)


class TenantCreate(SQLModel):
    business_name: str
    business_type: str | None = None
    owner_name: str
    email: str
    phone: str
    password: str | None = None
    address: str | None = None
    description: str | None = None
    services: list[str] | None = None
    timezone: str | None = None
    business_start_hour: int | None = None
    business_end_hour: int | None = None


class TenantPublic(SQLModel):
    id: int
    business_name: str
    business_type: str
    owner_name: str
    email: str
    phone: str
    address: str
    description: str
    services: list[str]
    timezone: str
    business_start_hour: int
    business_end_hour: int
    status: str
    calendar_connected: bool
    created_at: datetime
