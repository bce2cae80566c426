"""Base repository with the lookups every entity shares."""

from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.identity.core.logging import get_logger
from src.identity.schemas.pagination import decode_cursor, encode_cursor

logger = get_logger(__name__)


class BaseRepository[ModelType: SQLModel]:
    """Data access for one table.

    Repositories never commit. Services own the transaction and decide when
    a sequence of repository calls becomes durable.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Stage an entity in the current transaction (no flush/commit)."""
        self.session.add(entity)

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
        order_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Keyset pagination over ``query``, newest ``order_field`` first.

        Rows sharing an ``order_field`` value are ordered by id, so a page
        boundary never skips or repeats a row. An unreadable cursor restarts
        from the first page.

        Returns:
            (items, next_cursor, has_more)
        """
        id_field = self.model.id  # type: ignore[attr-defined]

        if cursor:
            try:
                position, last_id = decode_cursor(cursor)
            except ValueError:
                logger.warning("Ignoring invalid pagination cursor")
            else:
                query = query.where(
                    or_(
                        order_field < position,
                        and_(order_field == position, id_field < last_id),
                    )
                )

        query = query.order_by(order_field.desc(), id_field.desc()).limit(limit + 1)
        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        items = items[:limit]

        next_cursor = None
        if has_more:
            last = items[-1]
            position = getattr(last, order_field.key)
            next_cursor = encode_cursor(position, last.id)  # type: ignore[attr-defined]

        return items, next_cursor, has_more
