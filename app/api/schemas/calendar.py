from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlotOut(BaseModel):
    start: datetime
    end: datetime


class AvailabilityResponse(BaseModel):
    slots: list[SlotOut]


class BookAppointmentRequest(CamelModel):
    # Kept as strings: malformed timestamps are reported as invalid_format, not 422
    start: str | None = None
    end: str | None = None
    summary: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    service_type: str | None = None


class BookAppointmentResponse(CamelModel):
    success: bool
    event_id: str
    html_link: str
