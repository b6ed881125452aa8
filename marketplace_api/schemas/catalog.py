from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from marketplace_api.core.attributes import AttributeField, parse_schema
from marketplace_api.db.models.catalog import PropertyStatus
from marketplace_api.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    """Create category payload."""
    name: str = Field(..., min_length=1, description="Category name (unique within tenant)", examples=["Residential"])
    description: Optional[str] = Field(None, examples=["Properties for residential living"])
    attribute_schema: Optional[List[AttributeField]] = Field(
        None, description="Ordered attribute definitions for properties in this category"
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v

    @field_validator("attribute_schema")
    @classmethod
    def _unique_field_names(cls, v: Optional[List[AttributeField]]):
        if v is None:
            return v
        seen = set()
        for f in v:
            if f.name in seen:
                raise ValueError(f"Duplicate attribute name '{f.name}' in schema")
            seen.add(f.name)
        return v


class CategoryUpdate(CategoryCreate):
    """Full replacement of a category's name, description and schema."""


class CategoryRead(CamelModel):
    """Category read model."""
    id: UUID = Field(..., description="Category ID")
    name: str = Field(...)
    description: Optional[str] = Field(None)
    attribute_schema: List[AttributeField] = Field(default_factory=list)
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    @classmethod
    def from_entity(cls, entity) -> "CategoryRead":
        return cls(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            attribute_schema=parse_schema(entity.attribute_schema),
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class PropertyCreate(CamelModel):
    """Create property payload."""
    title: str = Field(..., min_length=1)
    description: Optional[str] = Field(None)
    price: Decimal = Field(..., ge=0, description="Non-negative price")
    location: str = Field(..., min_length=1, examples=["123 Main St, Springfield"])
    category_name: str = Field(..., min_length=1, examples=["Residential"])
    status: Optional[PropertyStatus] = Field(None, description="Defaults to AVAILABLE")
    image_urls: Optional[List[str]] = Field(None)
    # values are checked by the attribute validator, not here, so type errors name the field
    attributes: Optional[Dict[str, Any]] = Field(
        None,
        description="Dynamic attributes based on the category's schema",
        examples=[{"bedrooms": 3, "hasGarage": True}],
    )


class PropertyUpdate(CamelModel):
    """
    Property update payload.

    Title, description, price, location and attributes are replaced. Status and
    images change only when provided; a category name moves the property.
    """
    title: str = Field(..., min_length=1)
    description: Optional[str] = Field(None)
    price: Decimal = Field(..., ge=0)
    location: str = Field(..., min_length=1)
    category_name: Optional[str] = Field(None)
    status: Optional[PropertyStatus] = Field(None)
    image_urls: Optional[List[str]] = Field(None)
    attributes: Optional[Dict[str, Any]] = Field(None)


class PropertyStatusUpdate(CamelModel):
    """Status change payload."""
    status: PropertyStatus = Field(...)


class PropertyRead(CamelModel):
    """Property read model."""
    id: UUID = Field(..., description="Property ID")
    title: str = Field(...)
    description: Optional[str] = Field(None)
    price: Decimal = Field(...)
    location: str = Field(...)
    status: PropertyStatus = Field(...)
    category_name: Optional[str] = Field(None)
    image_urls: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    @classmethod
    def from_entity(cls, entity) -> "PropertyRead":
        return cls(
            id=entity.id,
            title=entity.title,
            description=entity.description,
            price=entity.price,
            location=entity.location,
            status=entity.status,
            category_name=entity.category.name if entity.category is not None else None,
            image_urls=list(entity.image_urls or []),
            attributes=dict(entity.attributes or {}),
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class PropertyPage(CamelModel):
    """One page of search results."""
    items: List[PropertyRead] = Field(default_factory=list)
    total: int = Field(..., description="Total matches across all pages")
    page: int = Field(..., description="Zero-based page number")
    size: int = Field(..., description="Page size")
    total_pages: int = Field(...)
