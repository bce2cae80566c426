"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.identity.api.dependencies.db import AuditDBSession, DBSession
from src.identity.api.dependencies.repositories import (
    AttemptRepo,
    IdentityRepo,
    InvitationRepo,
    LockRepo,
    SessionRepo,
)
from src.identity.repositories import AuditEntryRepository
from src.identity.services import (
    AlumniValidationWorkflow,
    CredentialStore,
    CsrfTokenService,
    IdentityService,
    InvitationService,
    RateLimiter,
    SessionManager,
    SystemLogger,
    TotpService,
)


def get_system_logger(audit_session: AuditDBSession) -> SystemLogger:
    """System logger bound to its own isolated session."""
    return SystemLogger(AuditEntryRepository(audit_session), audit_session)


SystemLoggerDep = Annotated[SystemLogger, Depends(get_system_logger)]


def get_rate_limiter(attempt_repo: AttemptRepo, lock_repo: LockRepo) -> RateLimiter:
    return RateLimiter(attempt_repo, lock_repo)


def get_session_manager(
    session: DBSession,
    identity_repo: IdentityRepo,
    session_repo: SessionRepo,
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    audit: SystemLoggerDep,
) -> SessionManager:
    return SessionManager(
        session=session,
        identity_repo=identity_repo,
        session_repo=session_repo,
        credential_store=CredentialStore(identity_repo),
        rate_limiter=rate_limiter,
        csrf_service=CsrfTokenService(),
        audit=audit,
    )


def get_totp_service(
    identity_repo: IdentityRepo, session: DBSession, audit: SystemLoggerDep
) -> TotpService:
    return TotpService(identity_repo, session, audit)


def get_invitation_service(
    invitation_repo: InvitationRepo,
    identity_repo: IdentityRepo,
    lock_repo: LockRepo,
    session: DBSession,
    audit: SystemLoggerDep,
) -> InvitationService:
    return InvitationService(invitation_repo, identity_repo, lock_repo, session, audit)


def get_alumni_workflow(
    identity_repo: IdentityRepo, session: DBSession, audit: SystemLoggerDep
) -> AlumniValidationWorkflow:
    return AlumniValidationWorkflow(identity_repo, session, audit)


def get_identity_service(
    identity_repo: IdentityRepo, session: DBSession, audit: SystemLoggerDep
) -> IdentityService:
    return IdentityService(identity_repo, session, audit)


SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
TotpServiceDep = Annotated[TotpService, Depends(get_totp_service)]
InvitationServiceDep = Annotated[InvitationService, Depends(get_invitation_service)]
AlumniWorkflowDep = Annotated[AlumniValidationWorkflow, Depends(get_alumni_workflow)]
IdentityServiceDep = Annotated[IdentityService, Depends(get_identity_service)]
