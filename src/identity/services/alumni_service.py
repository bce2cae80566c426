"""Alumni validation workflow.

An alumni identity requests validation; a board-tier validator approves or
rejects. Until approved, alumni are denied the elevated alumni permissions.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from starlette.concurrency import run_in_threadpool

from src.identity.core.context import AuthContext
from src.identity.core.logging import get_logger
from src.identity.core.notifications import send_alumni_decision_email
from src.identity.core.results import ErrorCode, Failure, Result
from src.identity.models import AuditAction, Identity, Role
from src.identity.models.base import utc_now
from src.identity.repositories import IdentityRepository
from src.identity.services import permission_model
from src.identity.services.audit_service import SystemLogger

logger = get_logger(__name__)


class AlumniValidationWorkflow:
    """Request, list and decide alumni validations."""

    def __init__(
        self,
        identity_repo: IdentityRepository,
        session: AsyncSession,
        audit: SystemLogger,
    ):
        self.identity_repo = identity_repo
        self.session = session
        self.audit = audit

    async def request_status(self, auth: AuthContext) -> Result[Identity]:
        """Mark the caller's alumni status as pending review.

        Idempotent: a second request while one is pending changes nothing.
        """
        identity = auth.identity
        if auth.role is not Role.ALUMNI:
            return Failure(ErrorCode.PERMISSION_DENIED, "Only alumni can request validation")
        if identity.alumni_validated:
            return identity

        now = utc_now()
        try:
            recorded = await self.identity_repo.mark_alumni_requested(identity.id, now)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to record alumni request", error=str(e))
            raise

        if recorded:
            set_committed_value(identity, "alumni_status_requested_at", now)
            await self.audit.append(
                identity.id, AuditAction.ALUMNI_REQUEST, "identity", identity.id, ctx=auth.request
            )
            logger.info("Alumni validation requested", identity_id=str(identity.id))
        return identity

    async def list_pending(
        self, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Identity], str | None, bool]:
        """Identities with a pending request that are not yet validated."""
        return await self.identity_repo.list_pending_alumni(cursor=cursor, limit=limit)

    async def validate(
        self, auth: AuthContext, target_identity_id: UUID, approve: bool
    ) -> Result[Identity]:
        """Approve or reject an alumni identity. Validators only."""
        validator = auth.identity
        if not permission_model.is_validator(auth.role):
            await self.audit.append(
                validator.id,
                AuditAction.PERMISSION_DENIED,
                "identity",
                target_identity_id,
                detail="action=alumni.validate",
                ctx=auth.request,
            )
            return Failure(ErrorCode.PERMISSION_DENIED)

        try:
            target = await self.identity_repo.get_by_id_for_update(target_identity_id)
            if target is None:
                await self.session.commit()
                return Failure(ErrorCode.IDENTITY_NOT_FOUND)
            if target.role != Role.ALUMNI.value:
                await self.session.commit()
                return Failure(ErrorCode.VALIDATION_ERROR, "Identity is not an alumni")

            target.alumni_validated = approve
            target.alumni_status_requested_at = None
            target.updated_at = utc_now()
            self.identity_repo.add(target)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to record alumni decision", error=str(e))
            raise

        await self.audit.append(
            validator.id,
            AuditAction.ALUMNI_APPROVE if approve else AuditAction.ALUMNI_REJECT,
            "identity",
            target.id,
            ctx=auth.request,
        )
        await run_in_threadpool(
            send_alumni_decision_email, target.email, target.first_name, approve
        )
        logger.info(
            "Alumni decision recorded",
            identity_id=str(target.id),
            validator_id=str(validator.id),
            approved=approve,
        )
        return target
