"""
Domain error taxonomy.

Every expected failure of the catalog core is a MarketplaceError subclass carrying
a machine-readable ``error_type``, the HTTP status the API layer maps it to, and a
``details`` dict with enough information for the caller to correct the request.
The API layer renders them into the standard ErrorResponse envelope.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class MarketplaceError(Exception):
    """Base class for recoverable, caller-facing errors."""

    status_code: int = 400
    error_type: str = "bad_request"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Tenancy

class TenantRequired(MarketplaceError):
    """No tenant could be resolved for a tenant-scoped operation."""

    error_type = "tenant_required"

    def __init__(self, message: str = "A tenant is required for this operation.") -> None:
        super().__init__(message)


class NotFoundInTenant(MarketplaceError):
    """
    Entity absent from the caller's tenant.

    Raised identically whether the row does not exist at all or belongs to another
    tenant, so cross-tenant existence never leaks.
    """

    status_code = 404
    error_type = "not_found"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found", {"resource": resource})
        self.resource = resource


# Attribute validation

class ValidationError(MarketplaceError):
    """Base class for attribute-bag validation failures."""


class MissingRequired(ValidationError):
    error_type = "missing_required"

    def __init__(self, field: str) -> None:
        super().__init__(
            f"Attribute '{field}' is required for this category.", {"field": field}
        )
        self.field = field


class TypeMismatch(ValidationError):
    error_type = "type_mismatch"

    def __init__(self, field: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Attribute '{field}' must be a {expected}, got {actual}.",
            {"field": field, "expected": expected, "actual": actual},
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class UnknownField(ValidationError):
    error_type = "unknown_field"

    def __init__(self, field: str) -> None:
        super().__init__(
            f"Attribute '{field}' is not recognized for this category.", {"field": field}
        )
        self.field = field


class SchemaNotConfigured(ValidationError):
    error_type = "schema_not_configured"

    def __init__(self, category: Optional[str] = None) -> None:
        label = f"Category '{category}'" if category else "Category"
        super().__init__(
            f"{label} has no attribute schema defined. Update the category first.",
            {"category": category},
        )
        self.category = category


# Filter building

class FilterError(MarketplaceError):
    """Base class for search-criteria failures."""


class InvalidSortField(FilterError):
    error_type = "invalid_sort_field"

    def __init__(self, field: str, allowed: Iterable[str]) -> None:
        allowed = sorted(allowed)
        super().__init__(
            f"Cannot sort by '{field}'.", {"field": field, "allowed": allowed}
        )
        self.field = field


class InvalidFilterValue(FilterError):
    error_type = "invalid_filter_value"

    def __init__(self, param: str, value: Any, reason: Optional[str] = None) -> None:
        message = f"Invalid value for '{param}': {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"param": param, "value": str(value)})
        self.param = param


class CategoryNotFound(FilterError):
    error_type = "category_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Category '{name}' does not exist.", {"category": name})
        self.name = name


# Catalog writes

class DuplicateCategory(MarketplaceError):
    status_code = 409
    error_type = "duplicate_category"

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Category with name '{name}' already exists in this tenant.", {"category": name}
        )


class CategoryInUse(MarketplaceError):
    status_code = 409
    error_type = "category_in_use"

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Category '{name}' is referenced by existing properties.", {"category": name}
        )


class DuplicateTenant(MarketplaceError):
    status_code = 409
    error_type = "duplicate_tenant"

    def __init__(self, slug: str) -> None:
        super().__init__(f"Tenant '{slug}' already exists.", {"slug": slug})


# Caller identity

class AuthenticationFailed(MarketplaceError):
    status_code = 401
    error_type = "authentication_failed"

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class PermissionDenied(MarketplaceError):
    status_code = 403
    error_type = "permission_denied"

    def __init__(self, message: str = "Insufficient role") -> None:
        super().__init__(message)
