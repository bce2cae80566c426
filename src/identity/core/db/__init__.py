"""Database utilities - engine, session."""

from src.identity.core.db.engine import (
    create_engine_for_url,
    dispose_engine,
    get_engine,
    get_sync_url,
)
from src.identity.core.db.session import get_session

__all__ = [
    "create_engine_for_url",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_sync_url",
]
