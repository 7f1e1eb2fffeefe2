from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VapiWebhookRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    function_name: str | None = Field(default=None, alias="function")
    parameters: dict[str, Any] | None = None
    ai_employee: str = Field(default="luna", alias="aiEmployee")


class VapiResponse(BaseModel):
    response: str
    data: dict[str, Any] | None = None
