from __future__ import annotations

import logging
import math
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.attributes import dump_schema, parse_schema, validate_attributes
from marketplace_api.core.errors import DuplicateCategory, NotFoundInTenant
from marketplace_api.core.settings import AppSettings
from marketplace_api.core.tenancy import TenantScope
from marketplace_api.db.models.catalog import Category, Property, PropertyStatus
from marketplace_api.repositories.catalog import CategoryRepository, PropertyRepository
from marketplace_api.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    PropertyCreate,
    PropertyPage,
    PropertyRead,
    PropertyUpdate,
)
from marketplace_api.schemas.search import SearchCriteria
from marketplace_api.services.base import TenantScopedService
from marketplace_api.services.search import FilterBuilder

logger = logging.getLogger(__name__)


class CategoryService(TenantScopedService):
    """Category management for the tenant in scope."""

    def __init__(self, session: AsyncSession, scope: TenantScope) -> None:
        super().__init__(session, scope)
        self.repo = CategoryRepository(session, scope)

    # PUBLIC_INTERFACE
    async def list_categories(self) -> List[Category]:
        """Return all categories of the tenant ordered by name."""
        return await self.repo.list_categories()

    # PUBLIC_INTERFACE
    async def get_category(self, category_id: UUID) -> Category:
        """Return a category or raise NotFoundInTenant."""
        category = await self.repo.get_category(category_id)
        if category is None:
            raise NotFoundInTenant("Category")
        return category

    # PUBLIC_INTERFACE
    async def create_category(self, payload: CategoryCreate) -> Category:
        """
        Create a category with an optional attribute schema.

        Raises:
            DuplicateCategory: the name is taken within the tenant
        """
        if await self.repo.get_category_by_name(payload.name) is not None:
            raise DuplicateCategory(payload.name)
        created = await self.repo.create_category(
            name=payload.name,
            description=payload.description,
            attribute_schema=dump_schema(payload.attribute_schema) if payload.attribute_schema is not None else None,
        )
        logger.info("Created category '%s' (%s)", created.name, created.id)
        return created

    # PUBLIC_INTERFACE
    async def update_category(self, category_id: UUID, payload: CategoryUpdate) -> Category:
        """
        Replace a category's name, description and attribute schema.

        Properties already stored under the category keep their attributes as
        they are; each one must satisfy the new schema on its next write.
        """
        category = await self.get_category(category_id)
        if payload.name != category.name and await self.repo.get_category_by_name(payload.name) is not None:
            raise DuplicateCategory(payload.name)

        new_schema = dump_schema(payload.attribute_schema) if payload.attribute_schema is not None else None
        if new_schema != (category.attribute_schema or None):
            referencing = await self.repo.count_properties(category.id)
            logger.info(
                "Attribute schema of category '%s' changed; %d existing properties are not re-validated",
                category.name,
                referencing,
            )
        return await self.repo.update_category(
            category,
            name=payload.name,
            description=payload.description,
            attribute_schema=new_schema,
        )

    # PUBLIC_INTERFACE
    async def delete_category(self, category_id: UUID) -> None:
        """Delete a category. Raises CategoryInUse while properties reference it."""
        category = await self.get_category(category_id)
        await self.repo.delete_category(category)
        logger.info("Deleted category '%s' (%s)", category.name, category_id)


class PropertyService(TenantScopedService):
    """
    Property listings for the tenant in scope.

    Every write validates the attribute bag against the schema of the target
    category as it is at that moment.
    """

    def __init__(self, session: AsyncSession, scope: TenantScope, settings: Optional[AppSettings] = None) -> None:
        super().__init__(session, scope)
        self.settings = settings
        self.categories = CategoryRepository(session, scope)
        self.repo = PropertyRepository(session, scope)

    # PUBLIC_INTERFACE
    async def get_property(self, property_id: UUID) -> Property:
        """Return a property or raise NotFoundInTenant."""
        row = await self.repo.get_property(property_id)
        if row is None:
            raise NotFoundInTenant("Property")
        return row

    # PUBLIC_INTERFACE
    async def create_property(self, payload: PropertyCreate) -> Property:
        """
        Create a property in the named category.

        Raises:
            NotFoundInTenant: the category does not exist in the tenant
            SchemaNotConfigured, MissingRequired, TypeMismatch, UnknownField
        """
        category = await self._category_by_name(payload.category_name)
        attributes = self._validated(payload.attributes, category)
        row = Property(
            title=payload.title,
            description=payload.description,
            price=payload.price,
            location=payload.location,
            status=(payload.status or PropertyStatus.AVAILABLE).value,
            image_urls=list(payload.image_urls or []),
            category_id=category.id,
            attributes=attributes,
        )
        created = await self.repo.create_property(row)
        logger.info("Created property %s in category '%s'", created.id, category.name)
        return created

    # PUBLIC_INTERFACE
    async def update_property(self, property_id: UUID, payload: PropertyUpdate) -> Property:
        """Replace a property's fields; attributes are re-validated against the current schema."""
        row = await self.get_property(property_id)
        if payload.category_name:
            category = await self._category_by_name(payload.category_name)
        else:
            category = row.category
        attributes = self._validated(payload.attributes, category)

        row.title = payload.title
        row.description = payload.description
        row.price = payload.price
        row.location = payload.location
        row.category = category
        row.attributes = attributes
        if payload.status is not None:
            row.status = payload.status.value
        if payload.image_urls is not None:
            row.image_urls = list(payload.image_urls)
        return await self.repo.save_property(row)

    # PUBLIC_INTERFACE
    async def update_status(self, property_id: UUID, status: PropertyStatus) -> Property:
        """Change only the listing status."""
        row = await self.get_property(property_id)
        row.status = status.value
        return await self.repo.save_property(row)

    # PUBLIC_INTERFACE
    async def delete_property(self, property_id: UUID) -> None:
        row = await self.get_property(property_id)
        await self.repo.delete_property(row)
        logger.info("Deleted property %s", property_id)

    # PUBLIC_INTERFACE
    async def search(self, criteria: SearchCriteria) -> PropertyPage:
        """
        Search properties of the tenant.

        The criteria are resolved into a FilterSpec first, so every malformed
        parameter fails before the database is queried.
        """
        spec = await FilterBuilder(self.scope, self.categories, self.settings).build(criteria)
        items, total = await self.repo.search(spec)
        return PropertyPage(
            items=[PropertyRead.from_entity(p) for p in items],
            total=total,
            page=spec.page,
            size=spec.size,
            total_pages=math.ceil(total / spec.size) if total else 0,
        )

    async def _category_by_name(self, name: str) -> Category:
        category = await self.categories.get_category_by_name(name.strip())
        if category is None:
            raise NotFoundInTenant("Category")
        return category

    @staticmethod
    def _validated(attributes, category: Category):
        accepted = validate_attributes(
            attributes, parse_schema(category.attribute_schema), category=category.name
        )
        # a null optional field is stored as absent
        return {name: value for name, value in accepted.items() if value is not None}
