from __future__ import annotations

import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_api.db.base import Base, JSONType, UUIDPkMixin, TimestampMixin, TenantMixin


class PropertyStatus(str, Enum):
    """Listing lifecycle status."""

    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    SOLD = "SOLD"


class Category(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Tenant-owned listing category; its attribute_schema shapes listing attributes."""
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_categories_tenant_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # ordered list of {"name", "type", "required"}
    attribute_schema: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSONType, nullable=True)


class Property(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Listing with a free-form attribute bag validated against its category."""
    __tablename__ = "properties"
    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
        Index("ix_properties_tenant_price", "tenant_id", "price"),
        Index("ix_properties_tenant_created_at", "tenant_id", "created_at"),
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=PropertyStatus.AVAILABLE.value, server_default=PropertyStatus.AVAILABLE.value
    )
    image_urls: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    attributes: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    category: Mapped[Category] = relationship(Category, lazy="joined")
