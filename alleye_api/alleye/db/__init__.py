"""
Database package: configuration, engine/session management and ORM models.
"""

from .base import Base
from .config import get_settings, Settings
from .session import (
    dispose_engine,
    get_engine,
    get_async_session,
    get_session_maker,
)

# Import models to ensure they are registered with SQLAlchemy metadata
# when the db package is imported.
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "get_engine",
    "get_async_session",
    "get_session_maker",
    "dispose_engine",
    "models",
]
