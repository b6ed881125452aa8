from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.tenancy import TenantScope


class TenantScopedService:
    """
    Base class for catalog services.

    Holds the request session and the tenant scope that every repository built
    by the service is bound to. Business rules live in the service; queries
    live in the repositories.
    """

    def __init__(self, session: AsyncSession, scope: TenantScope) -> None:
        self.session = session
        self.scope = scope
