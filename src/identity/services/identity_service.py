"""Identity administration - role changes and direct alumni accounts."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.identity.core.context import AuthContext
from src.identity.core.logging import get_logger, mask_email
from src.identity.core.results import ErrorCode, Failure, Result
from src.identity.core.security import hash_password, normalize_email
from src.identity.models import AuditAction, Identity, Permission, Role
from src.identity.models.base import utc_now
from src.identity.repositories import IdentityRepository
from src.identity.services import permission_model
from src.identity.services.audit_service import SystemLogger

logger = get_logger(__name__)


class IdentityService:
    """Privileged changes to identities."""

    def __init__(
        self,
        identity_repo: IdentityRepository,
        session: AsyncSession,
        audit: SystemLogger,
    ):
        self.identity_repo = identity_repo
        self.session = session
        self.audit = audit

    async def change_role(
        self, auth: AuthContext, target_identity_id: UUID, new_role: Role
    ) -> Result[Identity]:
        """Change another identity's role.

        The actor must strictly outrank both the target's current role and
        the role being assigned.
        """
        actor = auth.identity
        denied = permission_model.authorize(actor, Permission.MANAGE_USERS)

        try:
            target = await self.identity_repo.get_by_id_for_update(target_identity_id)
            if target is None:
                await self.session.commit()
                return Failure(ErrorCode.IDENTITY_NOT_FOUND)

            old_role = permission_model.parse_role(target.role)
            if denied is None and not (
                permission_model.can_manage(auth.role, old_role)
                and permission_model.can_manage(auth.role, new_role)
            ):
                denied = Failure(ErrorCode.PERMISSION_DENIED)

            if denied is not None:
                await self.session.commit()
            else:
                target.role = new_role.value
                if new_role is Role.ALUMNI and old_role is not Role.ALUMNI:
                    target.alumni_validated = False
                    target.alumni_status_requested_at = None
                target.updated_at = utc_now()
                self.identity_repo.add(target)
                await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to change role", error=str(e))
            raise

        if denied is not None:
            await self.audit.append(
                actor.id,
                AuditAction.ROLE_CHANGE,
                "identity",
                target_identity_id,
                detail=f"outcome=failure reason={denied.code.value} requested={new_role.value}",
                ctx=auth.request,
            )
            return denied

        await self.audit.append(
            actor.id,
            AuditAction.ROLE_CHANGE,
            "identity",
            target.id,
            detail=f"from={old_role.value} to={new_role.value}",
            ctx=auth.request,
        )
        logger.info(
            "Role changed",
            identity_id=str(target.id),
            old_role=old_role.value,
            new_role=new_role.value,
        )
        return target

    async def create_alumni(
        self,
        auth: AuthContext,
        email: str,
        first_name: str,
        last_name: str,
        password: str,
    ) -> Result[Identity]:
        """Create an already-validated alumni account directly (wildcard roles only)."""
        if not permission_model.is_wildcard(auth.role):
            await self.audit.append(
                auth.identity.id,
                AuditAction.PERMISSION_DENIED,
                "identity",
                None,
                detail="action=identity.create_alumni",
                ctx=auth.request,
            )
            return Failure(ErrorCode.PERMISSION_DENIED)

        email = normalize_email(email)
        if await self.identity_repo.get_by_email(email) is not None:
            return Failure(ErrorCode.EMAIL_ALREADY_REGISTERED)

        identity = Identity(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=Role.ALUMNI.value,
            alumni_validated=True,
        )
        try:
            self.identity_repo.add(identity)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return Failure(ErrorCode.EMAIL_ALREADY_REGISTERED)
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to create alumni account", error=str(e))
            raise

        await self.audit.append(
            auth.identity.id,
            AuditAction.IDENTITY_CREATE,
            "identity",
            identity.id,
            detail=f"role={Role.ALUMNI.value}",
            ctx=auth.request,
        )
        logger.info("Alumni account created", email=mask_email(identity.email))
        return identity
