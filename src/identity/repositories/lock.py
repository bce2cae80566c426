"""Repository for StoreLock rows."""

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from src.identity.models import StoreLock
from src.identity.models.base import utc_now
from src.identity.repositories.base import BaseRepository


class StoreLockRepository(BaseRepository[StoreLock]):
    """Serializes check-then-write sequences per key across workers."""

    model = StoreLock

    async def acquire(self, key: str) -> None:
        """Take the write lock for ``key`` until the current transaction ends.

        The row is created on first use; concurrent creators collapse onto one
        row via ON CONFLICT DO NOTHING. The UPDATE then blocks while another
        transaction holds the same key.
        """
        now = utc_now()
        dialect = self.session.bind.dialect.name  # type: ignore[union-attr]
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        await self.session.execute(
            insert(StoreLock)
            .values(key=key, touched_at=now)
            .on_conflict_do_nothing(index_elements=["key"])
        )
        await self.session.execute(
            update(StoreLock)
            .where(StoreLock.key == key)  # type: ignore[arg-type]
            .values(touched_at=now)
            .execution_options(synchronize_session=False)
        )
