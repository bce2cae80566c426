"""Invitation service - single-use registration tokens."""

from datetime import datetime, timedelta
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from src.identity.core.config import get_settings
from src.identity.core.context import AuthContext, RequestContext
from src.identity.core.logging import get_logger, mask_email
from src.identity.core.notifications import send_invitation_email
from src.identity.core.results import ErrorCode, Failure, Result
from src.identity.core.security import generate_token, hash_password, hash_token, normalize_email
from src.identity.models import (
    AuditAction,
    Identity,
    Invitation,
    InvitationStatus,
    Permission,
    Role,
)
from src.identity.models.base import utc_now
from src.identity.repositories import IdentityRepository, InvitationRepository, StoreLockRepository
from src.identity.services import permission_model
from src.identity.services.audit_service import SystemLogger

logger = get_logger(__name__)

_STATUS_FAILURES: dict[InvitationStatus, ErrorCode] = {
    InvitationStatus.ACCEPTED: ErrorCode.INVITATION_ALREADY_ACCEPTED,
    InvitationStatus.EXPIRED: ErrorCode.INVITATION_EXPIRED,
}


def _classify(invitation: Invitation | None, now: datetime) -> Failure | None:
    if invitation is None:
        return Failure(ErrorCode.INVITATION_NOT_FOUND)
    code = _STATUS_FAILURES.get(invitation.status_at(now))
    return Failure(code) if code else None


class InvitationService:
    """Issues invitations and turns them into identities."""

    def __init__(
        self,
        invitation_repo: InvitationRepository,
        identity_repo: IdentityRepository,
        lock_repo: StoreLockRepository,
        session: AsyncSession,
        audit: SystemLogger,
    ):
        self.invitation_repo = invitation_repo
        self.identity_repo = identity_repo
        self.lock_repo = lock_repo
        self.session = session
        self.audit = audit

    async def create(
        self,
        auth: AuthContext,
        email: str,
        role: Role,
        expires_in_hours: int | None = None,
    ) -> Result[tuple[Invitation, str]]:
        """Create an invitation and send it.

        Returns (invitation, plaintext_token). The token is not stored, only
        its hash.
        """
        settings = get_settings()
        creator = auth.identity

        denied = permission_model.authorize(creator, Permission.MANAGE_INVITATIONS)
        if denied is None and (
            role is Role.NONE or not permission_model.can_grant(auth.role, role)
        ):
            denied = Failure(ErrorCode.PERMISSION_DENIED, "You cannot grant this role")
        if denied is not None:
            await self._audit_create_rejected(auth, email, role, denied)
            return denied

        try:
            email = normalize_email(validate_email(email, check_deliverability=False).normalized)
        except EmailNotValidError:
            return Failure(ErrorCode.VALIDATION_ERROR, "Invalid email address")

        if expires_in_hours is None:
            lifetime = timedelta(days=settings.invite_expire_days)
        elif 1 <= expires_in_hours <= settings.invite_max_expire_hours:
            lifetime = timedelta(hours=expires_in_hours)
        else:
            return Failure(
                ErrorCode.VALIDATION_ERROR,
                f"Expiry must be between 1 and {settings.invite_max_expire_hours} hours",
            )

        now = utc_now()
        try:
            # One outstanding invitation per email: serialize on the email
            await self.lock_repo.acquire(f"invitation:{email}")

            failure = None
            if await self.identity_repo.get_by_email(email) is not None:
                failure = Failure(ErrorCode.EMAIL_ALREADY_REGISTERED)
            elif await self.invitation_repo.get_outstanding_for_email(email, now) is not None:
                failure = Failure(ErrorCode.INVITATION_PENDING)

            if failure is not None:
                # Only the lock row was touched; commit releases it without expiring loaded objects
                await self.session.commit()
            else:
                token = generate_token()
                invitation = Invitation(
                    email=email,
                    token_hash=hash_token(token),
                    role=role.value,
                    created_by_id=creator.id,
                    created_at=now,
                    expires_at=now + lifetime,
                )
                self.invitation_repo.add(invitation)
                await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to create invitation", error=str(e))
            raise

        if failure is not None:
            await self._audit_create_rejected(auth, email, role, failure)
            return failure

        await self.audit.append(
            creator.id,
            AuditAction.INVITATION_CREATE,
            "invitation",
            invitation.id,
            detail=(
                f"email={email} role={role.value} "
                f"expires_at={invitation.expires_at.isoformat()}"
            ),
            ctx=auth.request,
        )
        email_sent = await run_in_threadpool(
            send_invitation_email, email, token, role.value, invitation.expires_at
        )
        logger.info(
            "Invitation created",
            invitation_id=str(invitation.id),
            email=mask_email(email),
            role=role.value,
            email_sent=email_sent,
        )
        return invitation, token

    async def validate(self, token: str) -> Result[Invitation]:
        """Look up a token without changing anything (registration form pre-check)."""
        invitation = await self.invitation_repo.get_by_token_hash(hash_token(token))
        failure = _classify(invitation, utc_now())
        if failure is not None:
            return failure
        assert invitation is not None
        return invitation

    async def consume(
        self,
        ctx: RequestContext,
        token: str,
        first_name: str,
        last_name: str,
        password: str,
    ) -> Result[Identity]:
        """Register an identity from an invitation. Exactly-once per token.

        The invitation is claimed with a conditional UPDATE in the same
        transaction that inserts the identity. Concurrent callers racing on one
        token see exactly one successful claim; the others are classified from
        the committed row.
        """
        token_hash = hash_token(token)
        hashed_password = hash_password(password)
        now = utc_now()
        invitation_id: UUID | None = None

        try:
            claimed = await self.invitation_repo.claim(token_hash, now)
            invitation = await self.invitation_repo.get_by_token_hash(token_hash)
            invitation_id = invitation.id if invitation else None
            failure = None
            if not claimed:
                failure = _classify(invitation, now) or Failure(
                    ErrorCode.INVITATION_ALREADY_ACCEPTED
                )
                # Nothing was written
                await self.session.commit()
            else:
                assert invitation is not None
                if await self.identity_repo.get_by_email(invitation.email) is not None:
                    failure = Failure(ErrorCode.EMAIL_ALREADY_REGISTERED)
                    # Undo the claim so the invitation stays as it was
                    await self.session.rollback()
                else:
                    identity = Identity(
                        email=invitation.email,
                        hashed_password=hashed_password,
                        first_name=first_name.strip(),
                        last_name=last_name.strip(),
                        role=invitation.role,
                    )
                    self.identity_repo.add(identity)
                    await self.session.flush()
                    await self.invitation_repo.set_accepted_by(invitation.id, identity.id)
                    await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            failure = Failure(ErrorCode.EMAIL_ALREADY_REGISTERED)
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to consume invitation", error=str(e))
            raise

        if failure is not None:
            await self.audit.append(
                None,
                AuditAction.INVITATION_CONSUME_FAILURE,
                "invitation",
                invitation_id,
                detail=f"reason={failure.code.value}",
                ctx=ctx,
            )
            return failure

        await self.audit.append(
            identity.id,
            AuditAction.INVITATION_CONSUME,
            "invitation",
            invitation_id,
            detail=f"identity_id={identity.id} role={identity.role}",
            ctx=ctx,
        )
        logger.info(
            "Invitation accepted",
            invitation_id=str(invitation_id),
            identity_id=str(identity.id),
        )
        return identity

    async def delete(self, auth: AuthContext, invitation_id: UUID) -> Failure | None:
        """Revoke a pending invitation (hard delete).

        Allowed for the invitation's creator and for wildcard roles.
        """
        invitation = await self.invitation_repo.get_by_id(invitation_id)
        if invitation is None:
            return Failure(ErrorCode.INVITATION_NOT_FOUND)

        if invitation.created_by_id != auth.identity.id and not permission_model.is_wildcard(
            auth.role
        ):
            await self.audit.append(
                auth.identity.id,
                AuditAction.PERMISSION_DENIED,
                "invitation",
                invitation.id,
                detail="action=invitation.delete",
                ctx=auth.request,
            )
            return Failure(ErrorCode.PERMISSION_DENIED)

        try:
            deleted = await self.invitation_repo.delete_pending(invitation.id)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to delete invitation", error=str(e))
            raise

        if not deleted:
            return Failure(ErrorCode.INVITATION_ALREADY_ACCEPTED)

        await self.audit.append(
            auth.identity.id,
            AuditAction.INVITATION_DELETE,
            "invitation",
            invitation.id,
            detail=f"email={invitation.email}",
            ctx=auth.request,
        )
        return None

    async def list_pending(
        self, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Invitation], str | None, bool]:
        return await self.invitation_repo.list_pending(utc_now(), cursor=cursor, limit=limit)

    async def _audit_create_rejected(
        self, auth: AuthContext, email: str, role: Role, failure: Failure
    ) -> None:
        await self.audit.append(
            auth.identity.id,
            AuditAction.INVITATION_CREATE,
            "invitation",
            None,
            detail=f"outcome=failure reason={failure.code.value} email={email} role={role.value}",
            ctx=auth.request,
        )
