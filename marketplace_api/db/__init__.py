"""
Persistence layer: declarative base, connection settings and session helpers.

Importing the package also imports ``models`` so every table is registered on
``Base.metadata`` before Alembic or ``create_all`` inspects it.
"""

from .base import Base
from .config import Settings, get_settings
from .session import dispose_engine, get_async_session, get_engine, session_scope
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "get_engine",
    "dispose_engine",
    "get_async_session",
    "session_scope",
    "models",
]
