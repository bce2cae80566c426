"""System logger - append-only audit sink for security-relevant events."""

import contextlib
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.identity.core.context import RequestContext
from src.identity.core.exceptions import StoreUnavailable
from src.identity.core.logging import get_logger
from src.identity.models import AuditAction, AuditEntry
from src.identity.repositories import AuditEntryRepository

logger = get_logger(__name__)

MAX_DETAIL_LENGTH = 2000


class SystemLogger:
    """Records audit entries in their own session.

    The session is separate from the business transaction, so failure entries
    survive a business rollback. Unlike ordinary logging, a write failure is
    never swallowed: the entry is emitted on the structlog side channel and
    the caller gets :class:`StoreUnavailable`.
    """

    def __init__(self, audit_repo: AuditEntryRepository, session: AsyncSession):
        self.audit_repo = audit_repo
        self.session = session

    async def append(
        self,
        actor_id: UUID | None,
        action: AuditAction | str,
        target_type: str,
        target_id: UUID | str | None = None,
        detail: str | None = None,
        ctx: RequestContext | None = None,
    ) -> AuditEntry:
        """Append one audit entry.

        Args:
            actor_id: Identity performing the action, None for anonymous callers
            action: The action tag
            target_type: Kind of entity affected (e.g., "identity", "invitation")
            target_id: ID of the affected entity
            detail: Free-form detail string
            ctx: Request context supplying IP, user agent and request id

        Raises:
            StoreUnavailable: If the entry could not be persisted.
        """
        entry = AuditEntry(
            actor_id=actor_id,
            action=action.value if isinstance(action, AuditAction) else action,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
            detail=detail[:MAX_DETAIL_LENGTH] if detail else None,
            ip_address=ctx.ip_address if ctx else None,
            user_agent=ctx.user_agent[:512] if ctx and ctx.user_agent else None,
            request_id=ctx.request_id if ctx else None,
        )

        try:
            self.audit_repo.add(entry)
            await self.session.commit()
        except SQLAlchemyError as e:
            with contextlib.suppress(SQLAlchemyError):
                await self.session.rollback()
            logger.critical(
                "Audit entry could not be persisted",
                audit_action=entry.action,
                actor_id=str(actor_id) if actor_id else None,
                target_type=entry.target_type,
                target_id=entry.target_id,
                detail=entry.detail,
                ip_address=entry.ip_address,
                audit_request_id=entry.request_id,
                error=str(e),
            )
            raise StoreUnavailable("Audit store unavailable") from e

        logger.debug(
            "Audit entry recorded",
            audit_action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
        )
        return entry
