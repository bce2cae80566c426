"""Integration test fixtures for database and HTTP client operations.

Each test gets its own file-backed SQLite database, so concurrent sessions
exercise real locking instead of sharing one in-memory connection.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import SQLModel

from src.identity.api.dependencies import get_db_engine
from src.identity.core.db import create_engine_for_url, get_session
from src.identity.core.health import reset_health_cache
from src.identity.main import create_app
from src.identity.models import Identity, Role
from tests.helpers import Services, build_services, create_identity

pytestmark = pytest.mark.integration


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database with all tables."""
    test_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Business session. Sessions do not auto-commit; services and helpers commit."""
    async with get_session(engine) as session:
        yield session


@pytest.fixture
async def audit_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with get_session(engine) as session:
        yield session


@pytest.fixture
def services(db_session: AsyncSession, audit_session: AsyncSession) -> Services:
    return build_services(db_session, audit_session)


@pytest.fixture
async def board(db_session: AsyncSession) -> Identity:
    return await create_identity(db_session, Role.BOARD, email="board@example.com")


@pytest.fixture
async def member(db_session: AsyncSession) -> Identity:
    return await create_identity(db_session, Role.MEMBER, email="member@example.com")


@pytest.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, bound to the test database."""
    reset_health_cache()
    app = create_app()
    app.dependency_overrides[get_db_engine] = lambda: engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    reset_health_cache()
