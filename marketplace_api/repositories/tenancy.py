from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import or_, select, update

from marketplace_api.db.models.tenancy import Tenant, User
from .base import BaseRepository


class TenantRepository(BaseRepository):
    """Repository for tenants. Tenants are the partition keys themselves, so it is unscoped."""

    async def get_tenant(self, slug: str, *, refresh: bool = False) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.id == slug)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def get_active_tenant(self, slug: str) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.id == slug, Tenant.active.is_(True))
        return await self.scalar_one_or_none(stmt)

    async def exists(self, slug: str, name: str) -> bool:
        stmt = select(Tenant.id).where(or_(Tenant.id == slug, Tenant.name == name)).limit(1)
        return (await self.scalar_one_or_none(stmt)) is not None

    async def create_tenant(self, slug: str, name: str) -> Tenant:
        tenant = Tenant(id=slug, name=name, active=True)
        await self.add(tenant)
        await self.commit()
        return (await self.get_tenant(slug, refresh=True))  # type: ignore

    async def set_active(self, slug: str, active: bool) -> Optional[Tenant]:
        stmt = (
            update(Tenant)
            .where(Tenant.id == slug)
            .values(active=active)
            .execution_options(synchronize_session="fetch")
        )
        await self.execute(stmt)
        await self.commit()
        return await self.get_tenant(slug, refresh=True)


class UserRepository(BaseRepository):
    """
    Caller lookups used to establish the tenant scope.

    Runs before any scope exists, so it reads the users table unscoped and only
    by primary key.
    """

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)
