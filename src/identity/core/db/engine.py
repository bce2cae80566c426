"""Database engine management."""

import ssl
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.identity.core.config import get_settings

_engine: AsyncEngine | None = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _get_connect_args() -> dict[str, Any]:
    """Get connection arguments including SSL configuration."""
    settings = get_settings()
    connect_args: dict[str, Any] = {}

    ssl_mode = settings.database_ssl_mode
    if ssl_mode != "disable":
        ssl_context = ssl.create_default_context()
        if ssl_mode == "prefer" or ssl_mode == "require":
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        elif ssl_mode in ("verify-ca", "verify-full"):
            ssl_context.check_hostname = ssl_mode == "verify-full"
            ssl_context.verify_mode = ssl.CERT_REQUIRED
        connect_args["ssl"] = ssl_context

    return connect_args


def create_engine_for_url(url: str) -> AsyncEngine:
    """Create an async engine with pool and SSL settings suited to the dialect."""
    if _is_sqlite(url):
        # Local runs and tests; SQLite serializes writers itself.
        return create_async_engine(url, connect_args={"timeout": 30})

    settings = get_settings()
    return create_async_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        connect_args=_get_connect_args(),
    )


def get_engine() -> AsyncEngine:
    """Get or create the database engine singleton."""
    global _engine
    if _engine is None:
        _engine = create_engine_for_url(get_settings().database_url)
    return _engine


async def dispose_engine() -> None:
    """Dispose the database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def get_sync_url(url: str) -> str:
    """Convert an async driver URL to its sync counterpart (used by Alembic)."""
    return url.replace("+asyncpg", "").replace("+aiosqlite", "")
