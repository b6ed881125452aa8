"""Shared pytest fixtures and configuration."""

import os
from typing import AsyncGenerator

# Set test environment variables before the application modules read them
os.environ["ENVIRONMENT"] = "test"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["AUTO_SEED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STRICT_CATEGORY_FILTER"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace_api.db.base import Base
from marketplace_api.db.session import get_async_session

from factories import RESIDENTIAL_SCHEMA, add_category, add_tenant, add_user


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def tenants(session):
    """Two tenants, each with an admin, a plain user and a Residential category."""
    data = {}
    for slug, name in (("acme", "Acme Realty"), ("globex", "Globex Homes")):
        await add_tenant(session, slug, name)
        admin = await add_user(session, slug, "admin", role="ADMIN")
        viewer = await add_user(session, slug, "viewer")
        residential = await add_category(session, slug, "Residential", RESIDENTIAL_SCHEMA)
        data[slug] = {"admin": admin, "viewer": viewer, "residential": residential}
    return data


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the session dependency pointed at the test engine."""
    from marketplace_api.api.main import app

    async def _test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_async_session] = _test_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
