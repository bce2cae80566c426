"""Test helper functions for common data creation patterns."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.identity.core.context import AuthContext, RequestContext
from src.identity.models import Identity, Invitation, Role
from src.identity.repositories import (
    AttemptRecordRepository,
    AuditEntryRepository,
    IdentityRepository,
    InvitationRepository,
    SessionRepository,
    StoreLockRepository,
)
from src.identity.services import (
    AlumniValidationWorkflow,
    CredentialStore,
    CsrfTokenService,
    IdentityService,
    InvitationService,
    LoginState,
    RateLimiter,
    SessionManager,
    SystemLogger,
    TotpService,
)
from tests.factories import DEFAULT_TEST_PASSWORD, IdentityFactory, InvitationFactory

TEST_IP = "203.0.113.7"


def make_ctx(ip_address: str = TEST_IP, user_agent: str | None = "pytest") -> RequestContext:
    return RequestContext(ip_address=ip_address, user_agent=user_agent, request_id="test-request")


@dataclass
class Services:
    """Every service wired to one business session and one audit session."""

    session: AsyncSession
    audit_session: AsyncSession
    audit: SystemLogger
    audit_repo: AuditEntryRepository
    identity_repo: IdentityRepository
    rate_limiter: RateLimiter
    session_manager: SessionManager
    totp: TotpService
    invitations: InvitationService
    alumni: AlumniValidationWorkflow
    identities: IdentityService


def build_services(session: AsyncSession, audit_session: AsyncSession) -> Services:
    audit_repo = AuditEntryRepository(audit_session)
    audit = SystemLogger(audit_repo, audit_session)
    identity_repo = IdentityRepository(session)
    lock_repo = StoreLockRepository(session)
    rate_limiter = RateLimiter(AttemptRecordRepository(session), lock_repo)
    return Services(
        session=session,
        audit_session=audit_session,
        audit=audit,
        audit_repo=audit_repo,
        identity_repo=identity_repo,
        rate_limiter=rate_limiter,
        session_manager=SessionManager(
            session=session,
            identity_repo=identity_repo,
            session_repo=SessionRepository(session),
            credential_store=CredentialStore(identity_repo),
            rate_limiter=rate_limiter,
            csrf_service=CsrfTokenService(),
            audit=audit,
        ),
        totp=TotpService(identity_repo, session, audit),
        invitations=InvitationService(
            InvitationRepository(session), identity_repo, lock_repo, session, audit
        ),
        alumni=AlumniValidationWorkflow(identity_repo, session, audit),
        identities=IdentityService(identity_repo, session, audit),
    )


async def create_identity(
    session: AsyncSession, role: Role = Role.MEMBER, **identity_kwargs
) -> Identity:
    """Persist an identity whose password is DEFAULT_TEST_PASSWORD."""
    identity = IdentityFactory.with_role(role, **identity_kwargs)
    session.add(identity)
    await session.commit()
    return identity


async def create_invitation(
    session: AsyncSession, created_by: Identity, **invitation_kwargs
) -> tuple[Invitation, str]:
    invitation, token = InvitationFactory.with_token(
        created_by_id=created_by.id, **invitation_kwargs
    )
    session.add(invitation)
    await session.commit()
    return invitation, token


async def login_as(services: Services, identity: Identity) -> tuple[AuthContext, str, str]:
    """Log in through the session manager.

    Returns:
        (auth context, session token, csrf token)
    """
    ctx = make_ctx()
    result = await services.session_manager.login(ctx, identity.email, DEFAULT_TEST_PASSWORD)
    assert result.state is LoginState.AUTHENTICATED, result.failure
    assert result.session_token is not None and result.csrf_token is not None
    auth = await services.session_manager.resolve(ctx, result.session_token)
    assert isinstance(auth, AuthContext), auth
    return auth, result.session_token, result.csrf_token
