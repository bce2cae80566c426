"""Repository for AuditEntry entity."""

from uuid import UUID

from sqlmodel import select

from src.identity.models import AuditEntry
from src.identity.repositories.base import BaseRepository


class AuditEntryRepository(BaseRepository[AuditEntry]):
    """Append-only access to audit entries."""

    model = AuditEntry

    async def list_for_target(self, target_type: str, target_id: str) -> list[AuditEntry]:
        result = await self.session.execute(
            select(AuditEntry)
            .where(AuditEntry.target_type == target_type, AuditEntry.target_id == target_id)
            .order_by(AuditEntry.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_by_actor(self, actor_id: UUID, limit: int = 100) -> list[AuditEntry]:
        result = await self.session.execute(
            select(AuditEntry)
            .where(AuditEntry.actor_id == actor_id)
            .order_by(AuditEntry.created_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())
