from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.deps import get_current_user
from marketplace_api.core.errors import AuthenticationFailed, DuplicateTenant, NotFoundInTenant, PermissionDenied
from marketplace_api.db.models.tenancy import User
from marketplace_api.db.session import get_async_session
from marketplace_api.repositories.tenancy import TenantRepository
from marketplace_api.schemas.tenancy import OnboardingRequest, TenantActiveUpdate, TenantRead

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tenants"])


# PUBLIC_INTERFACE
@router.post(
    "/onboard",
    response_model=TenantRead,
    status_code=status.HTTP_201_CREATED,
    summary="Onboard organization",
    description="Register a new tenant. Users and credentials are provisioned by the auth service.",
)
async def onboard(
    payload: OnboardingRequest,
    session: AsyncSession = Depends(get_async_session),
) -> TenantRead:
    repo = TenantRepository(session)
    if await repo.exists(payload.slug, payload.name):
        raise DuplicateTenant(payload.slug)
    try:
        tenant = await repo.create_tenant(payload.slug, payload.name)
    except IntegrityError:
        await session.rollback()
        raise DuplicateTenant(payload.slug)
    logger.info("Onboarded tenant '%s'", tenant.id)
    return TenantRead.from_entity(tenant)


# PUBLIC_INTERFACE
@router.patch(
    "/tenants/{slug}/active",
    response_model=TenantRead,
    summary="Activate or deactivate tenant",
    description=(
        "Toggle a tenant's active flag. Only an administrator of that tenant may do this; "
        "an inactive tenant resolves no scope for any caller."
    ),
)
async def set_tenant_active(
    payload: TenantActiveUpdate,
    slug: str = Path(..., description="Tenant slug"),
    user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> TenantRead:
    if user is None:
        raise AuthenticationFailed("Authentication required")
    # unscoped: an inactive tenant's administrator can still reactivate it
    if not user.is_admin or user.tenant_id != slug:
        raise PermissionDenied()
    tenant = await TenantRepository(session).set_active(slug, payload.active)
    if tenant is None:
        raise NotFoundInTenant("Tenant")
    logger.info("Tenant '%s' active=%s", slug, tenant.active)
    return TenantRead.from_entity(tenant)
