"""Database session dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from src.identity.core.db import get_engine, get_session


def get_db_engine() -> AsyncEngine:
    """Engine dependency (overridden in tests)."""
    return get_engine()


DBEngine = Annotated[AsyncEngine, Depends(get_db_engine)]


async def get_db_session(engine: DBEngine) -> AsyncGenerator[AsyncSession, None]:
    """Business session, shared by all dependencies of one request."""
    async with get_session(engine) as session:
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_audit_db_session(engine: DBEngine) -> AsyncGenerator[AsyncSession, None]:
    """Separate session for audit entries.

    Commits independently from the business transaction, so entries are
    preserved even if the business transaction rolls back.
    """
    async with get_session(engine) as session:
        yield session


AuditDBSession = Annotated[AsyncSession, Depends(get_audit_db_session)]
