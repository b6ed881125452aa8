from __future__ import annotations

import re
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, status

from marketplace_api.core.deps import get_property_service, require_admin
from marketplace_api.schemas.catalog import (
    PropertyCreate,
    PropertyPage,
    PropertyRead,
    PropertyStatusUpdate,
    PropertyUpdate,
)
from marketplace_api.schemas.search import SearchCriteria
from marketplace_api.services.catalog import PropertyService

router = APIRouter(prefix="/properties", tags=["Properties"])

_ATTR_PARAM = re.compile(r"^attr\[(.+)\]$")


def attribute_params(request: Request) -> Dict[str, str]:
    """Collect ``attr[<field>]=<value>`` query parameters; the last value of a repeated key wins."""
    found: Dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        match = _ATTR_PARAM.match(key)
        if match:
            found[match.group(1)] = value
    return found


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PropertyPage,
    summary="Search properties",
    description=(
        "Search the tenant's properties. Attribute filters use attr[<field>]=<value>; the "
        "value is compared using the type declared by the selected category's schema."
    ),
)
async def search_properties(
    request: Request,
    min_price: Optional[str] = Query(None, alias="minPrice", description="Inclusive lower price bound"),
    max_price: Optional[str] = Query(None, alias="maxPrice", description="Inclusive upper price bound"),
    location: Optional[str] = Query(None, description="Case-insensitive location substring"),
    category: Optional[str] = Query(None, description="Category name"),
    status_: Optional[str] = Query(None, alias="status", description="AVAILABLE, PENDING or SOLD"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_dir: str = Query("DESC", alias="sortDir"),
    page: int = Query(0),
    size: Optional[int] = Query(None),
    svc: PropertyService = Depends(get_property_service),
) -> PropertyPage:
    criteria = SearchCriteria(
        min_price=min_price,
        max_price=max_price,
        location=location,
        category=category,
        status=status_,
        attributes=attribute_params(request),
        sort_by=sort_by,
        sort_dir=sort_dir,
        page=page,
        size=size,
    )
    return await svc.search(criteria)


# PUBLIC_INTERFACE
@router.get("/{property_id}", response_model=PropertyRead, summary="Get property")
async def get_property(
    property_id: UUID = Path(..., description="Property ID"),
    svc: PropertyService = Depends(get_property_service),
) -> PropertyRead:
    return PropertyRead.from_entity(await svc.get_property(property_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=PropertyRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create property",
    description="Create a property; attributes must satisfy the category's current schema.",
    dependencies=[Depends(require_admin)],
)
async def create_property(
    payload: PropertyCreate,
    svc: PropertyService = Depends(get_property_service),
) -> PropertyRead:
    return PropertyRead.from_entity(await svc.create_property(payload))


# PUBLIC_INTERFACE
@router.put(
    "/{property_id}",
    response_model=PropertyRead,
    summary="Update property",
    dependencies=[Depends(require_admin)],
)
async def update_property(
    payload: PropertyUpdate,
    property_id: UUID = Path(..., description="Property ID"),
    svc: PropertyService = Depends(get_property_service),
) -> PropertyRead:
    return PropertyRead.from_entity(await svc.update_property(property_id, payload))


# PUBLIC_INTERFACE
@router.patch(
    "/{property_id}/status",
    response_model=PropertyRead,
    summary="Change property status",
    dependencies=[Depends(require_admin)],
)
async def update_property_status(
    payload: PropertyStatusUpdate,
    property_id: UUID = Path(..., description="Property ID"),
    svc: PropertyService = Depends(get_property_service),
) -> PropertyRead:
    return PropertyRead.from_entity(await svc.update_status(property_id, payload.status))


# PUBLIC_INTERFACE
@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    dependencies=[Depends(require_admin)],
)
async def delete_property(
    property_id: UUID = Path(..., description="Property ID"),
    svc: PropertyService = Depends(get_property_service),
) -> None:
    await svc.delete_property(property_id)
