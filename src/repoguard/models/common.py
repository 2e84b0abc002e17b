"""Pydantic models shared by API responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Error detail in API responses."""

    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    trace_id: str = Field(..., min_length=8, max_length=128)
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = "1.0"
    error: ErrorDetail


class EventAccepted(BaseModel):
    """Body returned once a webhook has passed the auth gate."""

    status: str = "accepted"
    event: str
    action: str | None = None
    delivery_id: str | None = None
    handled: bool = False
    handler: str | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)
