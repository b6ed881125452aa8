from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.errors import AuthenticationFailed, PermissionDenied
from marketplace_api.core.security import decode_token
from marketplace_api.core.settings import AppSettings, get_app_settings
from marketplace_api.core.tenancy import TenantScope
from marketplace_api.db.models.tenancy import User
from marketplace_api.db.session import get_async_session
from marketplace_api.repositories.tenancy import TenantRepository, UserRepository
from marketplace_api.services.catalog import CategoryService, PropertyService

logger = logging.getLogger(__name__)

# Tokens are issued by the external auth service; anonymous callers are allowed through.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# PUBLIC_INTERFACE
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> Optional[User]:
    """
    Resolve the caller from the Authorization bearer token.

    Returns None for anonymous callers. A token that is present but invalid, or
    that names an unknown or inactive user, is rejected with 401.
    """
    if not token:
        return None
    try:
        payload = decode_token(token)
    except JWTError:
        raise AuthenticationFailed("Invalid token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationFailed("Invalid token")

    user = await UserRepository(session).get_user_by_id(user_id)
    if user is None or not user.is_active:
        raise AuthenticationFailed("User not found or inactive")
    return user


# PUBLIC_INTERFACE
async def resolve_tenant(
    request: Request,
    user: Optional[User],
    session: AsyncSession,
    settings: Optional[AppSettings] = None,
) -> Optional[str]:
    """
    Work out which tenant a request is for.

    1. An authenticated caller is scoped to the tenant recorded on their user row.
    2. An anonymous caller may name a tenant with the tenant header; only an
       existing, active tenant is accepted.
    3. Otherwise no tenant is resolved.
    """
    settings = settings or get_app_settings()
    header = (request.headers.get(settings.TENANT_HEADER) or "").strip() or None
    tenants = TenantRepository(session)

    if user is not None:
        if header and header != user.tenant_id:
            logger.warning(
                "Caller %s sent %s=%s but belongs to tenant %s; using membership",
                user.id,
                settings.TENANT_HEADER,
                header,
                user.tenant_id,
            )
        tenant = await tenants.get_active_tenant(user.tenant_id)
        if tenant is None:
            logger.warning("Tenant %s of caller %s is inactive", user.tenant_id, user.id)
            return None
        return tenant.id

    if header:
        tenant = await tenants.get_active_tenant(header)
        if tenant is None:
            logger.info("Ignoring %s naming unknown or inactive tenant '%s'", settings.TENANT_HEADER, header)
            return None
        return tenant.id
    return None


# PUBLIC_INTERFACE
async def get_tenant_scope(
    request: Request,
    user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[TenantScope, None]:
    """
    Yield the TenantScope for this request and clear it when the request ends.

    The scope may be empty; dependencies that need a tenant use
    require_tenant_scope instead.
    """
    tenant_id = await resolve_tenant(request, user, session)
    scope = TenantScope(tenant_id)
    request.state.tenant_id = tenant_id
    try:
        yield scope
    finally:
        scope.clear()


# PUBLIC_INTERFACE
async def require_tenant_scope(scope: TenantScope = Depends(get_tenant_scope)) -> TenantScope:
    """Fail with TenantRequired before any store access when no tenant was resolved."""
    scope.require()
    return scope


# PUBLIC_INTERFACE
async def require_admin(
    user: Optional[User] = Depends(get_current_user),
    scope: TenantScope = Depends(require_tenant_scope),
) -> User:
    """Require an authenticated administrator of the scoped tenant."""
    if user is None:
        raise AuthenticationFailed("Authentication required")
    if not user.is_admin or user.tenant_id != scope.current():
        raise PermissionDenied()
    return user


# PUBLIC_INTERFACE
def get_category_service(
    session: AsyncSession = Depends(get_async_session),
    scope: TenantScope = Depends(require_tenant_scope),
) -> CategoryService:
    return CategoryService(session, scope)


# PUBLIC_INTERFACE
def get_property_service(
    session: AsyncSession = Depends(get_async_session),
    scope: TenantScope = Depends(require_tenant_scope),
) -> PropertyService:
    return PropertyService(session, scope, get_app_settings())
