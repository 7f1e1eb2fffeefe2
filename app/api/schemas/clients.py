from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import EmailStr, Field, field_validator, model_validator

from app.api.schemas.calendar import CamelModel


class WorkingHours(CamelModel):
    """Opening hours on the hour; only the hour is stored per tenant."""

    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def _hh_mm(cls, v: str) -> str:
        hour, sep, minute = v.partition(":")
        if not hour.isdigit() or not 0 <= int(hour) <= 24 or (sep and minute not in ("0", "00")):
            raise ValueError("expected HH:00 with the hour between 00 and 24")
        return v

    @model_validator(mode="after")
    def _opens_before_close(self) -> "WorkingHours":
        if self.start_hour >= self.end_hour:
            raise ValueError("start must be before end")
        return self

    @property
    def start_hour(self) -> int:
        return int(self.start.split(":")[0])

    @property
    def end_hour(self) -> int:
        return int(self.end.split(":")[0])


class ClientCreateRequest(CamelModel):
    business_name: str = Field(min_length=1, max_length=200)
    business_type: str | None = None
    owner_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(min_length=7, max_length=32)
    password: str | None = Field(default=None, min_length=8)
    address: str | None = None
    description: str | None = None
    services: list[str] | None = None
    working_hours: WorkingHours | None = None
    time_zone: str | None = None

    @field_validator("time_zone")
    @classmethod
    def _known_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {v!r}")
        return v


class ClientSummary(CamelModel):
    id: int
    business_name: str
    owner_name: str
    email: str
    status: str


class ClientCredentials(CamelModel):
    api_key: str
    jwt_token: str


class ClientCreateResponse(CamelModel):
    success: bool = True
    message: str = "Client created successfully"
    client: ClientSummary
    credentials: ClientCredentials
