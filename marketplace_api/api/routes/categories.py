from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from marketplace_api.core.deps import get_category_service, require_admin
from marketplace_api.schemas.catalog import CategoryCreate, CategoryRead, CategoryUpdate
from marketplace_api.services.catalog import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[CategoryRead],
    summary="List categories",
    description="List the tenant's categories with their attribute schemas, ordered by name.",
)
async def list_categories(svc: CategoryService = Depends(get_category_service)) -> List[CategoryRead]:
    return [CategoryRead.from_entity(c) for c in await svc.list_categories()]


# PUBLIC_INTERFACE
@router.get(
    "/{category_id}",
    response_model=CategoryRead,
    summary="Get category",
)
async def get_category(
    category_id: UUID = Path(..., description="Category ID"),
    svc: CategoryService = Depends(get_category_service),
) -> CategoryRead:
    return CategoryRead.from_entity(await svc.get_category(category_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
    description="Create a category. Properties can only carry attributes once a schema is defined.",
    dependencies=[Depends(require_admin)],
)
async def create_category(
    payload: CategoryCreate,
    svc: CategoryService = Depends(get_category_service),
) -> CategoryRead:
    return CategoryRead.from_entity(await svc.create_category(payload))


# PUBLIC_INTERFACE
@router.put(
    "/{category_id}",
    response_model=CategoryRead,
    summary="Update category",
    description=(
        "Replace name, description and attribute schema. Existing properties keep their "
        "stored attributes and are checked against the new schema on their next write."
    ),
    dependencies=[Depends(require_admin)],
)
async def update_category(
    payload: CategoryUpdate,
    category_id: UUID = Path(..., description="Category ID"),
    svc: CategoryService = Depends(get_category_service),
) -> CategoryRead:
    return CategoryRead.from_entity(await svc.update_category(category_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete category",
    description="Delete a category that no property references.",
    dependencies=[Depends(require_admin)],
)
async def delete_category(
    category_id: UUID = Path(..., description="Category ID"),
    svc: CategoryService = Depends(get_category_service),
) -> None:
    await svc.delete_category(category_id)
