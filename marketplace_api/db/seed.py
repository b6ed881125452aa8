"""
Database seeding utilities for minimal reference data.

Seeds:
- Base tenant (SEED_TENANT_SLUG, default acme)
- Administrator account for the base tenant
- "Residential" category with a small attribute schema

Usage:
  python -m marketplace_api.db.run_migrations upgrade head
  python -m marketplace_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.attributes import AttributeField, AttributeType, dump_schema
from marketplace_api.core.settings import get_app_settings
from marketplace_api.core.tenancy import TenantScope, scoped
from marketplace_api.db.models.tenancy import User
from marketplace_api.db.session import session_scope
from marketplace_api.repositories.catalog import CategoryRepository
from marketplace_api.repositories.tenancy import TenantRepository

logger = logging.getLogger(__name__)

RESIDENTIAL_SCHEMA = [
    AttributeField(name="bedrooms", type=AttributeType.NUMBER, required=True),
    AttributeField(name="bathrooms", type=AttributeType.NUMBER),
    AttributeField(name="hasGarage", type=AttributeType.BOOLEAN),
    AttributeField(name="heating", type=AttributeType.STRING),
]


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with minimal reference data.

    Every step is idempotent; existing rows are left untouched.
    """
    settings = get_app_settings()
    async with session_scope() as session:
        tenant_id = await _ensure_base_tenant(session, slug=settings.SEED_TENANT_SLUG, name=settings.SEED_TENANT_NAME)
        with scoped(tenant_id) as scope:
            await _seed_admin(session, scope)
            await _seed_categories(session, scope)


async def _ensure_base_tenant(session: AsyncSession, slug: str, name: str) -> str:
    """Ensure the base tenant row exists and return its slug."""
    repo = TenantRepository(session)
    tenant = await repo.get_tenant(slug)
    if tenant is None:
        tenant = await repo.create_tenant(slug, name)
        logger.info("Created base tenant '%s'", slug)
    return tenant.id


async def _seed_admin(session: AsyncSession, scope: TenantScope) -> None:
    """Seed the administrator account mirrored from the auth service."""
    tenant_id = scope.require()
    res = await session.execute(
        select(User).where(User.tenant_id == tenant_id, User.username == "admin")
    )
    if res.scalar_one_or_none() is not None:
        return
    session.add(User(tenant_id=tenant_id, username="admin", email=f"admin@{tenant_id}.example", role="ADMIN"))
    await session.commit()
    logger.info("Created admin user for tenant '%s'", tenant_id)


async def _seed_categories(session: AsyncSession, scope: TenantScope) -> None:
    """Seed the Residential category with its attribute schema."""
    repo = CategoryRepository(session, scope)
    if await repo.get_category_by_name("Residential") is not None:
        return
    await repo.create_category(
        name="Residential",
        description="Houses and apartments for residential living",
        attribute_schema=dump_schema(RESIDENTIAL_SCHEMA),
    )
    logger.info("Created 'Residential' category")


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
