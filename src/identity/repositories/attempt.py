"""Repository for AttemptRecord entity."""

from datetime import datetime

from sqlmodel import select

from src.identity.models import AttemptOutcome, AttemptRecord
from src.identity.repositories.base import BaseRepository


class AttemptRecordRepository(BaseRepository[AttemptRecord]):
    """Append-only access to authentication attempts."""

    model = AttemptRecord

    async def failure_times(
        self, ip_address: str, identifier: str, since: datetime
    ) -> list[datetime]:
        """Timestamps of failed attempts for the pair after ``since``, oldest first."""
        result = await self.session.execute(
            select(AttemptRecord.attempted_at)
            .where(
                AttemptRecord.ip_address == ip_address,
                AttemptRecord.identifier == identifier,
                AttemptRecord.outcome == AttemptOutcome.FAILURE.value,
                AttemptRecord.attempted_at > since,
            )
            .order_by(AttemptRecord.attempted_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
