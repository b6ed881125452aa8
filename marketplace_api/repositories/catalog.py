from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, false, func, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError

from marketplace_api.core.attributes import BooleanValue, NumberValue, StringValue
from marketplace_api.core.errors import CategoryInUse, DuplicateCategory, InvalidSortField
from marketplace_api.db.models.catalog import Category, Property
from marketplace_api.schemas.search import AttributePredicate, FilterSpec, SortDirection
from .base import TenantScopedRepository


# storage identifier -> column; the only columns a search may be ordered by
SORTABLE_COLUMNS = {
    "created_at": Property.created_at,
    "updated_at": Property.updated_at,
    "price": Property.price,
    "title": Property.title,
    "location": Property.location,
}


class CategoryRepository(TenantScopedRepository):
    """Repository for categories of the current tenant."""

    async def list_categories(self) -> List[Category]:
        stmt = self.scoped(Category).order_by(Category.name)
        res = await self.scalars(stmt)
        return list(res)

    async def get_category(self, category_id: UUID, *, refresh: bool = False) -> Optional[Category]:
        stmt = self.scoped(Category).where(Category.id == category_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def get_category_by_name(self, name: str) -> Optional[Category]:
        stmt = self.scoped(Category).where(Category.name == name)
        return await self.scalar_one_or_none(stmt)

    async def create_category(
        self,
        *,
        name: str,
        description: Optional[str],
        attribute_schema: Optional[List[Dict[str, Any]]],
    ) -> Category:
        row = self.stamp(
            Category(name=name, description=description, attribute_schema=attribute_schema)
        )
        await self.add(row)
        await self._commit_unique(name)
        return (await self.get_category(row.id, refresh=True))  # type: ignore

    async def update_category(
        self,
        category: Category,
        *,
        name: str,
        description: Optional[str],
        attribute_schema: Optional[List[Dict[str, Any]]],
    ) -> Category:
        category.name = name
        category.description = description
        category.attribute_schema = attribute_schema
        await self._commit_unique(name)
        return (await self.get_category(category.id, refresh=True))  # type: ignore

    async def count_properties(self, category_id: UUID) -> int:
        stmt = self.where_tenant(
            select(func.count(Property.id)).where(Property.category_id == category_id), Property
        )
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def delete_category(self, category: Category) -> None:
        """Delete a category; refuses while any property references it."""
        if await self.count_properties(category.id):
            raise CategoryInUse(category.name)
        await self.session.delete(category)
        try:
            await self.commit()
        except IntegrityError:
            # a property was attached concurrently; the FK is RESTRICT
            await self.session.rollback()
            raise CategoryInUse(category.name)

    async def _commit_unique(self, name: str) -> None:
        try:
            await self.commit()
        except IntegrityError:
            await self.session.rollback()
            raise DuplicateCategory(name)


class PropertyRepository(TenantScopedRepository):
    """Repository for property listings of the current tenant."""

    async def get_property(self, property_id: UUID, *, refresh: bool = False) -> Optional[Property]:
        stmt = self.scoped(Property).where(Property.id == property_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def create_property(self, row: Property) -> Property:
        self.stamp(row)
        await self.add(row)
        await self.commit()
        return (await self.get_property(row.id, refresh=True))  # type: ignore

    async def save_property(self, row: Property) -> Property:
        """Persist changes made to a loaded property."""
        await self.commit()
        return (await self.get_property(row.id, refresh=True))  # type: ignore

    async def delete_property(self, row: Property) -> None:
        await self.session.delete(row)
        await self.commit()

    async def search(self, spec: FilterSpec) -> Tuple[List[Property], int]:
        """
        Execute a FilterSpec and return (page items, total matches).

        The FilterSpec's tenant and the ambient scope are both applied; one reused
        under a different scope matches nothing.
        """
        conditions = [Property.tenant_id == spec.tenant_id]
        if spec.min_price is not None:
            conditions.append(Property.price >= spec.min_price)
        if spec.max_price is not None:
            conditions.append(Property.price <= spec.max_price)
        if spec.location:
            conditions.append(Property.location.icontains(spec.location, autoescape=True))
        if spec.category_id is not None:
            conditions.append(Property.category_id == spec.category_id)
        if spec.status is not None:
            conditions.append(Property.status == spec.status.value)
        conditions.extend(self._attribute_clause(p) for p in spec.attributes)

        column = SORTABLE_COLUMNS.get(spec.sort_column)
        if column is None:
            raise InvalidSortField(spec.sort_column, SORTABLE_COLUMNS)
        ordering = column.asc() if spec.sort_direction is SortDirection.ASC else column.desc()

        count_stmt = self.where_tenant(select(func.count(Property.id)).where(*conditions), Property)
        total = int((await self.execute(count_stmt)).scalar_one())

        stmt = (
            self.scoped(Property)
            .where(*conditions)
            .order_by(ordering, Property.id)
            .offset(spec.offset)
            .limit(spec.size)
        )
        res = await self.scalars(stmt)
        return list(res), total

    def _attribute_clause(self, predicate: AttributePredicate):
        """
        Type-exact equality on one attribute: a number predicate never matches a
        string value and vice versa.
        """
        value = predicate.value
        if self.dialect_name == "postgresql":
            return type_coerce(Property.attributes, JSONB).contains({predicate.key: value.value})

        if '"' in predicate.key:
            # not addressable as a JSON path label, so no stored attribute can match
            return false()
        path = f'$."{predicate.key}"'
        extracted = func.json_extract(Property.attributes, path)
        json_type = func.json_type(Property.attributes, path)
        if isinstance(value, BooleanValue):
            return json_type == ("true" if value.value else "false")
        if isinstance(value, NumberValue):
            return and_(json_type.in_(("integer", "real")), extracted == value.value)
        if isinstance(value, StringValue):
            return and_(json_type == "text", extracted == value.value)
        raise AssertionError(f"Unhandled attribute value: {value!r}")

