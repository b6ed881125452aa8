"""
Category attribute schemas and the validator for property attribute bags.

A category declares an ordered list of AttributeField definitions. A property's
attribute bag must satisfy the schema current at the moment it is written:

1. every required field is present (a ``None`` value counts as absent),
2. every present field has the declared runtime type,
3. no key outside the schema is present.

Validation stops at the first failure: the schema pass runs in declaration order
and the unknown-key pass only runs after it fully succeeds. A category without
a schema rejects every submission with SchemaNotConfigured.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, field_validator

from marketplace_api.core.errors import (
    MissingRequired,
    SchemaNotConfigured,
    TypeMismatch,
    UnknownField,
)


class AttributeType(str, Enum):
    """Declared type of an attribute field."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class AttributeField(BaseModel):
    """One field of a category attribute schema."""

    name: str = Field(..., min_length=1, description="Attribute name", examples=["bedrooms"])
    type: AttributeType = Field(..., description="Declared value type", examples=["number"])
    required: bool = Field(False, description="Whether the attribute is mandatory")

    model_config = {"frozen": True}

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


Scalar = Union[str, int, float, bool]


@dataclass(frozen=True)
class StringValue:
    value: str
    type = AttributeType.STRING


@dataclass(frozen=True)
class NumberValue:
    value: Union[int, float]
    type = AttributeType.NUMBER


@dataclass(frozen=True)
class BooleanValue:
    value: bool
    type = AttributeType.BOOLEAN


AttributeValue = Union[StringValue, NumberValue, BooleanValue]


# PUBLIC_INTERFACE
def attribute_value(raw: Scalar) -> AttributeValue:
    """Wrap a scalar into the closed AttributeValue union."""
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, (int, float)):
        return NumberValue(raw)
    if isinstance(raw, str):
        return StringValue(raw)
    raise TypeError(f"Unsupported attribute value: {type(raw).__name__}")


def type_name(value: Any) -> str:
    """Name the runtime type of a submitted value in schema vocabulary."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return AttributeType.BOOLEAN.value
    if isinstance(value, float) and not math.isfinite(value):
        return "non-finite number"
    if isinstance(value, (int, float)):
        return AttributeType.NUMBER.value
    if isinstance(value, str):
        return AttributeType.STRING.value
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def matches_type(value: Any, expected: AttributeType) -> bool:
    # bool is a subclass of int; it is never a number here. Neither are NaN
    # and the infinities.
    if expected is AttributeType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return not isinstance(value, float) or math.isfinite(value)
    if expected is AttributeType.BOOLEAN:
        return isinstance(value, bool)
    if expected is AttributeType.STRING:
        return isinstance(value, str)
    raise AssertionError(f"Unhandled attribute type: {expected}")


# PUBLIC_INTERFACE
def parse_schema(raw: Optional[Iterable[Any]]) -> List[AttributeField]:
    """Load a stored schema (list of dicts or AttributeField) into AttributeField objects."""
    if not raw:
        return []
    return [f if isinstance(f, AttributeField) else AttributeField.model_validate(f) for f in raw]


# PUBLIC_INTERFACE
def dump_schema(schema: Optional[Sequence[AttributeField]]) -> List[Dict[str, Any]]:
    """Serialize a schema for the JSON column."""
    return [f.model_dump(mode="json") for f in schema or []]


# PUBLIC_INTERFACE
def validate_attributes(
    attributes: Optional[Mapping[str, Any]],
    schema: Optional[Sequence[AttributeField]],
    *,
    category: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate an attribute bag against a category schema.

    Parameters:
        attributes: submitted bag; None is treated as empty
        schema: the category's current ordered field list
        category: category name, only used in the SchemaNotConfigured message
    Returns:
        The submitted bag, unchanged. No coercion happens here. A null value
        counts as absent and is kept in the returned bag; callers storing the
        bag drop null-valued keys first.
    Raises:
        SchemaNotConfigured, MissingRequired, TypeMismatch, UnknownField
    """
    if not schema:
        raise SchemaNotConfigured(category)

    bag: Mapping[str, Any] = attributes if attributes is not None else {}

    for field in schema:
        value = bag.get(field.name)
        if value is None:
            if field.required:
                raise MissingRequired(field.name)
            continue
        if not matches_type(value, field.type):
            raise TypeMismatch(field.name, field.type.value, type_name(value))

    known = {field.name for field in schema}
    for key in bag:
        if key not in known:
            raise UnknownField(key)

    return attributes if attributes is not None else {}


# PUBLIC_INTERFACE
def typed_attributes(attributes: Mapping[str, Any]) -> Dict[str, AttributeValue]:
    """Convert an accepted bag into AttributeValue instances, skipping null values."""
    return {k: attribute_value(v) for k, v in attributes.items() if v is not None}
