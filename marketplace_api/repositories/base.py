from __future__ import annotations

from typing import Any, Type, TypeVar

from sqlalchemy import Executable, Result, Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.tenancy import TenantScope

M = TypeVar("M")


class BaseRepository:
    """
    Thin wrapper over an AsyncSession shared by all repositories.

    Used directly only for tables that are not tenant partitioned: the tenants
    themselves and the caller lookup that runs before a tenant is resolved.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable) -> Result[Any]:
        return await self.session.execute(statement)

    async def scalars(self, statement: Executable):
        return (await self.execute(statement)).scalars()

    async def scalar_one_or_none(self, statement: Executable):
        return (await self.execute(statement)).scalar_one_or_none()

    async def add(self, entity: Any) -> None:
        self.session.add(entity)

    async def commit(self) -> None:
        await self.session.commit()

    @property
    def dialect_name(self) -> str:
        """Name of the bound database dialect, e.g. ``postgresql`` or ``sqlite``."""
        return self.session.get_bind().dialect.name


class TenantScopedRepository(BaseRepository):
    """
    Repository for tenant-partitioned tables.

    Every statement is built through ``scoped``/``where_tenant`` and every new
    row is stamped through ``stamp``; all three read the tenant from the
    request's TenantScope and raise TenantRequired when it is absent. No method
    of a subclass takes a tenant argument.
    """

    def __init__(self, session: AsyncSession, scope: TenantScope) -> None:
        super().__init__(session)
        self.scope = scope

    def where_tenant(self, stmt: Select, model: Type[M]) -> Select:
        """Restrict an existing statement to the current tenant."""
        return stmt.where(model.tenant_id == self.scope.require())  # type: ignore[attr-defined]

    def scoped(self, model: Type[M]) -> Select:
        """``select(model)`` restricted to the current tenant."""
        return self.where_tenant(select(model), model)

    def stamp(self, entity: M) -> M:
        """Assign the current tenant to a new entity."""
        entity.tenant_id = self.scope.require()  # type: ignore[attr-defined]
        return entity
