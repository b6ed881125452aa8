"""
Search filter building.

Turns raw, loosely typed SearchCriteria into an immutable FilterSpec bound to the
tenant of the current scope. Category names are resolved within that tenant and
attribute predicates are coerced to the type the category schema declares, so
``attr[bedrooms]=3`` matches the number 3 and never the string "3".
"""
from __future__ import annotations

import logging
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from marketplace_api.core.attributes import (
    AttributeField,
    AttributeType,
    AttributeValue,
    BooleanValue,
    NumberValue,
    StringValue,
    parse_schema,
)
from marketplace_api.core.errors import CategoryNotFound, InvalidFilterValue, InvalidSortField
from marketplace_api.core.settings import AppSettings, get_app_settings
from marketplace_api.core.tenancy import TenantScope
from marketplace_api.db.models.catalog import Category, PropertyStatus
from marketplace_api.repositories.catalog import CategoryRepository
from marketplace_api.schemas.search import AttributePredicate, FilterSpec, SearchCriteria, SortDirection

logger = logging.getLogger(__name__)

# logical (API) sort field -> storage column identifier
SORT_FIELDS: Dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "price": "price",
    "title": "title",
    "location": "location",
}

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
# predicate values are bound as signed 64-bit integers
_INT64_MIN, _INT64_MAX = -(2 ** 63), 2 ** 63 - 1


# PUBLIC_INTERFACE
def coerce_predicate_value(raw: str, field_type: Optional[AttributeType]) -> AttributeValue:
    """
    Coerce a query-string value to the declared attribute type.

    number: integer when the text has no '.', float otherwise; the raw string when
    it does not parse, falls outside signed 64-bit or is not finite. boolean:
    "true"/"false" in any case; the raw string otherwise. string, unknown field
    or no schema: the raw string.
    """
    if field_type is AttributeType.NUMBER:
        text = raw.strip()
        if "." not in text and _INT_RE.match(text):
            number = int(text)
            if _INT64_MIN <= number <= _INT64_MAX:
                return NumberValue(number)
            return StringValue(raw)
        if _FLOAT_RE.match(text):
            number = float(text)
            if math.isfinite(number):
                return NumberValue(number)
        return StringValue(raw)
    if field_type is AttributeType.BOOLEAN:
        lowered = raw.strip().lower()
        if lowered == "true":
            return BooleanValue(True)
        if lowered == "false":
            return BooleanValue(False)
        return StringValue(raw)
    return StringValue(raw)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _parse_price(param: str, value: Optional[Union[Decimal, str]]) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidFilterValue(param, value, "not a number")
    if not parsed.is_finite():
        raise InvalidFilterValue(param, value, "not a finite number")
    return parsed


class FilterBuilder:
    """
    Builds FilterSpecs for the tenant held by ``scope``.

    The tenant is read from the scope exactly once per build and captured in
    the FilterSpec; building without an established scope raises TenantRequired.
    """

    def __init__(
        self,
        scope: TenantScope,
        categories: CategoryRepository,
        settings: Optional[AppSettings] = None,
    ) -> None:
        self.scope = scope
        self.categories = categories
        self.settings = settings or get_app_settings()

    # PUBLIC_INTERFACE
    async def build(self, criteria: SearchCriteria) -> FilterSpec:
        """
        Resolve criteria into a FilterSpec.

        Raises:
            TenantRequired: no tenant in scope
            InvalidSortField: sort field outside the allow-list
            InvalidFilterValue: malformed price, status, direction, page or size
            CategoryNotFound: unknown category with STRICT_CATEGORY_FILTER enabled
        """
        tenant_id = self.scope.require()

        min_price = _parse_price("minPrice", criteria.min_price)
        max_price = _parse_price("maxPrice", criteria.max_price)
        status = self._parse_status(criteria.status)
        sort_column = self._parse_sort_field(criteria.sort_by)
        sort_direction = self._parse_direction(criteria.sort_dir)
        page, size = self._parse_paging(criteria.page, criteria.size)

        category: Optional[Category] = None
        if not _blank(criteria.category):
            category = await self._resolve_category(criteria.category.strip())  # type: ignore[union-attr]

        schema = parse_schema(category.attribute_schema) if category is not None else []
        predicates = self._predicates(criteria.attributes, schema)

        return FilterSpec(
            tenant_id=tenant_id,
            page=page,
            size=size,
            min_price=min_price,
            max_price=max_price,
            location=None if _blank(criteria.location) else criteria.location.strip(),  # type: ignore[union-attr]
            category_id=category.id if category is not None else None,
            status=status,
            attributes=predicates,
            sort_column=sort_column,
            sort_direction=sort_direction,
        )

    async def _resolve_category(self, name: str) -> Optional[Category]:
        category = await self.categories.get_category_by_name(name)
        if category is not None:
            return category
        if self.settings.STRICT_CATEGORY_FILTER:
            raise CategoryNotFound(name)
        logger.warning("Search category '%s' not found in tenant; ignoring category filter", name)
        return None

    @staticmethod
    def _predicates(attributes: Dict[str, Any], schema: List[AttributeField]):
        types = {field.name: field.type for field in schema}
        return tuple(
            AttributePredicate(key=key, value=coerce_predicate_value(str(raw), types.get(key)))
            for key, raw in sorted(attributes.items())
        )

    @staticmethod
    def _parse_status(value: Optional[str]) -> Optional[PropertyStatus]:
        if _blank(value):
            return None
        try:
            return PropertyStatus(value.strip().upper())  # type: ignore[union-attr]
        except ValueError:
            raise InvalidFilterValue("status", value, "expected one of AVAILABLE, PENDING, SOLD")

    @staticmethod
    def _parse_sort_field(value: Optional[str]) -> str:
        if _blank(value):
            return SORT_FIELDS["createdAt"]
        column = SORT_FIELDS.get(value.strip())  # type: ignore[union-attr]
        if column is None:
            raise InvalidSortField(value, SORT_FIELDS)  # type: ignore[arg-type]
        return column

    @staticmethod
    def _parse_direction(value: Optional[str]) -> SortDirection:
        if _blank(value):
            return SortDirection.DESC
        try:
            return SortDirection(value.strip().upper())  # type: ignore[union-attr]
        except ValueError:
            raise InvalidFilterValue("sortDir", value, "expected ASC or DESC")

    def _parse_paging(self, page: Optional[int], size: Optional[int]):
        page = 0 if page is None else page
        size = self.settings.DEFAULT_PAGE_SIZE if size is None else size
        if page < 0:
            raise InvalidFilterValue("page", page, "must be zero or greater")
        if size < 1 or size > self.settings.MAX_PAGE_SIZE:
            raise InvalidFilterValue("size", size, f"must be between 1 and {self.settings.MAX_PAGE_SIZE}")
        return page, size
