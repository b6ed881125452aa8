from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class OnboardingRequest(BaseModel):
    """Create a new organization."""
    slug: str = Field(
        ...,
        min_length=3,
        max_length=20,
        pattern=r"^[a-z0-9][a-z0-9-]*$",
        description="Tenant identifier used in the X-Tenant-ID header",
        examples=["acme"],
    )
    name: str = Field(..., min_length=3, max_length=50, description="Display name", examples=["Acme Realty"])


class TenantRead(BaseModel):
    """Tenant read model."""
    slug: str = Field(..., description="Tenant identifier")
    name: str = Field(...)
    active: bool = Field(...)
    created_at: datetime = Field(...)

    @classmethod
    def from_entity(cls, entity) -> "TenantRead":
        return cls(slug=entity.id, name=entity.name, active=entity.active, created_at=entity.created_at)


class TenantActiveUpdate(BaseModel):
    """Activation toggle."""
    active: bool = Field(...)
