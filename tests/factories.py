"""Row factories and token helpers shared by the test modules."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.core.attributes import AttributeField, AttributeType, dump_schema
from marketplace_api.core.security import create_access_token
from marketplace_api.core.tenancy import scoped
from marketplace_api.db.models.tenancy import Tenant, User
from marketplace_api.repositories.catalog import CategoryRepository

RESIDENTIAL_SCHEMA = [
    AttributeField(name="bedrooms", type=AttributeType.NUMBER, required=True),
    AttributeField(name="hasGarage", type=AttributeType.BOOLEAN),
    AttributeField(name="heating", type=AttributeType.STRING),
]


async def add_tenant(session: AsyncSession, slug: str, name: str, *, active: bool = True) -> Tenant:
    tenant = Tenant(id=slug, name=name, active=active)
    session.add(tenant)
    await session.commit()
    return tenant


async def add_user(
    session: AsyncSession, tenant_id: str, username: str, role: str = "USER", *, is_active: bool = True
) -> User:
    user = User(tenant_id=tenant_id, username=username, role=role, is_active=is_active)
    session.add(user)
    await session.commit()
    return user


async def add_category(session: AsyncSession, tenant_id: str, name: str, schema=None):
    with scoped(tenant_id) as scope:
        return await CategoryRepository(session, scope).create_category(
            name=name,
            description=None,
            attribute_schema=dump_schema(schema) if schema is not None else None,
        )


def token_for(user: User, tenant_id: Optional[str] = None) -> str:
    return create_access_token(str(user.id), tenant_id or user.tenant_id, roles=[user.role])


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}
