"""Repository for AuthSession entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, delete, or_, update
from sqlmodel import select

from src.identity.models import AuthSession, SessionState
from src.identity.repositories.base import BaseRepository


class SessionRepository(BaseRepository[AuthSession]):
    """Repository for server-side sessions."""

    model = AuthSession

    async def get_by_token_hash(self, token_hash: str) -> AuthSession | None:
        result = await self.session.execute(
            select(AuthSession).where(AuthSession.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def touch(self, session_id: UUID, now: datetime) -> None:
        """Slide the idle timeout forward."""
        await self.session.execute(
            update(AuthSession)
            .where(AuthSession.id == session_id)  # type: ignore[arg-type]
            .values(last_activity_at=now)
            .execution_options(synchronize_session=False)
        )

    async def delete_by_id(self, session_id: UUID) -> bool:
        result = await self.session.execute(
            delete(AuthSession)
            .where(AuthSession.id == session_id)  # type: ignore[arg-type]
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def delete_stale_for_identity(
        self, identity_id: UUID, challenge_cutoff: datetime, idle_cutoff: datetime
    ) -> int:
        """Drop the identity's expired challenges and idle sessions.

        Challenges created before ``challenge_cutoff`` and sessions last used
        before ``idle_cutoff`` can never be resumed.

        Returns:
            Number of rows deleted.
        """
        result = await self.session.execute(
            delete(AuthSession)
            .where(AuthSession.identity_id == identity_id)  # type: ignore[arg-type]
            .where(
                or_(
                    and_(
                        AuthSession.state == SessionState.PENDING_TOTP.value,
                        AuthSession.created_at < challenge_cutoff,  # type: ignore[arg-type]
                    ),
                    and_(
                        AuthSession.state == SessionState.AUTHENTICATED.value,
                        AuthSession.last_activity_at < idle_cutoff,  # type: ignore[arg-type]
                    ),
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]
