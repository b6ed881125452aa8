from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str = Field(..., examples=["Healthy"])


class TenantEcho(BaseModel):
    """Tenant resolved for the current request."""
    tenant_id: str = Field(..., examples=["acme"])


class ErrorInfo(BaseModel):
    type: str = Field(..., description="Stable error code, e.g. tenant_required or type_mismatch")
    message: str = Field(...)
    details: Optional[Any] = Field(
        default=None, description="Offending field, parameter or resource; validation issues for 422"
    )


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """
    Body of every non-2xx response.

    tenant_id is the tenant the request resolved to, or null when none was
    resolved (including all tenant_required errors).
    """
    status: int
    error: ErrorInfo
    correlation_id: Optional[str] = Field(default=None, description="Echo of the X-Correlation-ID header")
    tenant_id: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None
    timestamp: datetime = Field(..., description="UTC time the error was produced")


class CamelModel(BaseModel):
    """Base for catalog payloads: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
