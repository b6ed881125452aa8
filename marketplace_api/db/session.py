from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings, get_settings

_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.SQL_ECHO}
    if settings.backend != "sqlite":
        options.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
    return options


def _session_maker() -> async_sessionmaker[AsyncSession]:
    """Create the engine and session factory on first use."""
    global _ENGINE, _SESSION_MAKER
    if _SESSION_MAKER is None:
        settings = get_settings()
        _ENGINE = create_async_engine(settings.async_database_url, **_engine_options(settings))
        # rows stay readable after commit; reloads use populate_existing
        _SESSION_MAKER = async_sessionmaker(bind=_ENGINE, expire_on_commit=False, autoflush=False)
    return _SESSION_MAKER


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the process-wide AsyncEngine."""
    _session_maker()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Close pooled connections; the next session call builds a fresh engine."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one AsyncSession per request."""
    async with _session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for work outside a request (seeding, maintenance). Rolls back on error.

    Usage:
        async with session_scope() as session:
            ...
    """
    async with _session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
