"""Migration runner shared by the bootstrap script and deployments."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

from alembic import command
from alembic.config import Config


def run_migrations_sync(config_path: str = "alembic.ini") -> None:
    """Upgrade the identity store schema to head."""
    command.upgrade(Config(config_path), "head")


async def run_migrations_async(config_path: str = "alembic.ini") -> None:
    """Run Alembic migrations from async context.

    Alembic's env.py drives its own engine, so it runs off the event loop.
    """
    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor() as pool:
        await loop.run_in_executor(pool, run_migrations_sync, config_path)
