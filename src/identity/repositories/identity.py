"""Repository for Identity entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select

from src.identity.models import Identity
from src.identity.models.base import utc_now
from src.identity.repositories.base import BaseRepository


class IdentityRepository(BaseRepository[Identity]):
    """Repository for Identity entity."""

    model = Identity

    async def get_by_email(self, email: str) -> Identity | None:
        """Get identity by (already normalized) email address."""
        result = await self.session.execute(select(Identity).where(Identity.email == email))
        return result.scalar_one_or_none()

    async def get_by_id_for_update(self, id: UUID) -> Identity | None:
        """Get identity with a row lock (FOR UPDATE, ignored by SQLite), freshly loaded."""
        result = await self.session.execute(
            select(Identity)
            .where(Identity.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def enable_totp(self, id: UUID, secret: str, verified_at: datetime) -> bool:
        """Store the secret and set the flag, only if TOTP is currently off.

        Returns:
            True if this call enabled TOTP, False if it was already enabled.
        """
        result = await self.session.execute(
            update(Identity)
            .where(Identity.id == id)  # type: ignore[arg-type]
            .where(Identity.totp_enabled.is_(False))  # type: ignore[attr-defined]
            .values(
                totp_secret=secret,
                totp_enabled=True,
                totp_verified_at=verified_at,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def disable_totp(self, id: UUID, secret: str) -> bool:
        """Clear the secret and flag, only if ``secret`` is still the enrolled one.

        Returns:
            True if this call disabled TOTP.
        """
        result = await self.session.execute(
            update(Identity)
            .where(Identity.id == id)  # type: ignore[arg-type]
            .where(Identity.totp_enabled.is_(True))  # type: ignore[attr-defined]
            .where(Identity.totp_secret == secret)
            .values(
                totp_secret=None,
                totp_enabled=False,
                totp_verified_at=None,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def mark_alumni_requested(self, id: UUID, requested_at: datetime) -> bool:
        """Record an alumni status request unless one is already pending.

        Returns:
            True if a new request was recorded, False if one was already pending.
        """
        result = await self.session.execute(
            update(Identity)
            .where(Identity.id == id)  # type: ignore[arg-type]
            .where(Identity.alumni_status_requested_at.is_(None))  # type: ignore[union-attr]
            .values(alumni_status_requested_at=requested_at, updated_at=requested_at)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def list_pending_alumni(
        self, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Identity], str | None, bool]:
        """List identities with a pending alumni request that are not yet validated."""
        query = select(Identity).where(
            Identity.alumni_status_requested_at.is_not(None),  # type: ignore[union-attr]
            Identity.alumni_validated.is_(False),  # type: ignore[attr-defined]
        )
        return await self.paginate(query, cursor, limit, Identity.alumni_status_requested_at)
