from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Text, UniqueConstraint, func, true
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_api.db.base import Base, UUIDPkMixin, TimestampMixin, TenantMixin


class Tenant(Base):
    """Organization owning an isolated catalog. The slug is the partition key."""
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(Text, primary_key=True)  # slug
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class User(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """
    Caller account mirrored from the auth service.

    Only the tenant membership, role and active flag are used here; credentials
    live with the external auth service.
    """
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "username", name="uq_users_tenant_username"),
    )

    username: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="USER", server_default="USER")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"
