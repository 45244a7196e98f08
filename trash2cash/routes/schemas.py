# Request bodies and the uniform response envelope shared by all routes.

from typing import Any

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field, StrictFloat

from trash2cash.container import StationContainer


class Envelope(BaseModel):
    success: bool
    message: str
    data: Any | None = None


def ok(message: str, data: Any | None = None) -> dict:
    return Envelope(success=True, message=message, data=data).model_dump()


def fail(message: str) -> dict:
    return Envelope(success=False, message=message).model_dump()


def get_container(request: Request) -> StationContainer:
    return request.app.state.container


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RequestSessionReq(_CamelModel):
    kiosk_id: str = Field(default="default", alias="kioskId", min_length=1)


class SessionTokenReq(_CamelModel):
    session_token: str = Field(alias="sessionToken", min_length=1)


class ConnectSessionReq(_CamelModel):
    session_token: str | None = Field(default=None, alias="sessionToken")
    qr_payload: str | None = Field(default=None, alias="qrPayload")
    user_id: str = Field(alias="userId", min_length=1)
    activate: bool = False


class DepositReq(_CamelModel):
    session_token: str = Field(alias="sessionToken", min_length=1)
    material: str
    # Strict so a JSON boolean is not coerced to 1.0
    weight: StrictFloat
