"""
ORM models for tenants, callers, categories and property listings.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .tenancy import (  # noqa: F401
    Tenant,
    User,
)
from .catalog import (  # noqa: F401
    Category,
    Property,
    PropertyStatus,
)
