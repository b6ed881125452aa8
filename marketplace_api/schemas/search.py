from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel, Field

from marketplace_api.core.attributes import AttributeValue
from marketplace_api.db.models.catalog import PropertyStatus


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class SearchCriteria(BaseModel):
    """
    Raw, optional search parameters as received from the caller.

    Values are kept loose (strings allowed) so the filter builder can report
    malformed input as invalid_filter_value with the offending parameter name.
    """
    min_price: Optional[Union[Decimal, str]] = Field(None, description="Inclusive lower price bound")
    max_price: Optional[Union[Decimal, str]] = Field(None, description="Inclusive upper price bound")
    location: Optional[str] = Field(None, description="Case-insensitive substring of the location")
    category: Optional[str] = Field(None, description="Category name within the tenant")
    status: Optional[str] = Field(None, description="AVAILABLE, PENDING or SOLD")
    attributes: Dict[str, str] = Field(default_factory=dict, description="attr[<field>]=<value> predicates")
    sort_by: str = Field("createdAt", description="Logical sort field")
    sort_dir: str = Field("DESC", description="ASC or DESC")
    page: int = Field(0, description="Zero-based page number")
    size: Optional[int] = Field(None, description="Page size; defaults to DEFAULT_PAGE_SIZE")


@dataclass(frozen=True)
class AttributePredicate:
    """Equality constraint on one attribute, already coerced to its declared type."""
    key: str
    value: AttributeValue


@dataclass(frozen=True)
class FilterSpec:
    """
    Fully resolved, tenant-scoped search constraints.

    ``tenant_id`` is captured once at build time; a FilterSpec cannot exist
    without it. ``None`` on any optional dimension means "no constraint".
    """
    tenant_id: str
    page: int
    size: int
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    location: Optional[str] = None
    category_id: Optional[UUID] = None
    status: Optional[PropertyStatus] = None
    attributes: Tuple[AttributePredicate, ...] = ()
    sort_column: str = "created_at"
    sort_direction: SortDirection = SortDirection.DESC

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("FilterSpec requires a tenant_id")

    @property
    def offset(self) -> int:
        return self.page * self.size
