"""Repository for Invitation entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, update
from sqlmodel import select

from src.identity.models import Invitation
from src.identity.repositories.base import BaseRepository


class InvitationRepository(BaseRepository[Invitation]):
    """Repository for Invitation entity."""

    model = Invitation

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by token hash regardless of status."""
        result = await self.session.execute(
            select(Invitation)
            .where(Invitation.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_outstanding_for_email(self, email: str, now: datetime) -> Invitation | None:
        """Get the unaccepted, unexpired invitation for an email, if any."""
        result = await self.session.execute(
            select(Invitation).where(
                Invitation.email == email,
                Invitation.accepted_at.is_(None),  # type: ignore[union-attr]
                Invitation.expires_at > now,
            )
        )
        return result.scalars().first()

    async def claim(self, token_hash: str, now: datetime) -> bool:
        """Mark a pending, unexpired invitation accepted.

        Single conditional UPDATE: of any number of concurrent callers exactly
        one sees a rowcount of 1.
        """
        result = await self.session.execute(
            update(Invitation)
            .where(Invitation.token_hash == token_hash)  # type: ignore[arg-type]
            .where(Invitation.accepted_at.is_(None))  # type: ignore[union-attr]
            .where(Invitation.expires_at > now)  # type: ignore[arg-type]
            .values(accepted_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def set_accepted_by(self, invitation_id: UUID, identity_id: UUID) -> None:
        await self.session.execute(
            update(Invitation)
            .where(Invitation.id == invitation_id)  # type: ignore[arg-type]
            .values(accepted_by_id=identity_id)
            .execution_options(synchronize_session=False)
        )

    async def delete_pending(self, invitation_id: UUID) -> bool:
        """Hard-delete an invitation that has not been accepted."""
        result = await self.session.execute(
            delete(Invitation)
            .where(Invitation.id == invitation_id)  # type: ignore[arg-type]
            .where(Invitation.accepted_at.is_(None))  # type: ignore[union-attr]
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def list_pending(
        self,
        now: datetime,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Invitation], str | None, bool]:
        """List pending, unexpired invitations, newest first."""
        query = select(Invitation).where(
            Invitation.accepted_at.is_(None),  # type: ignore[union-attr]
            Invitation.expires_at > now,
        )
        return await self.paginate(query, cursor, limit, Invitation.created_at)
