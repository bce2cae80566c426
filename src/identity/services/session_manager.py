"""Login state machine and session lifecycle.

    Anonymous --credentials--> CredentialsChecked --+--> Authenticated
                                                    |
                                                    +--> NeedsSecondFactor --code--> Authenticated

A pending second factor is stored as a short-lived ``pending_totp`` session
row whose token correlates the follow-up request. It never grants access.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from src.identity.core.config import get_settings
from src.identity.core.context import AuthContext, RequestContext
from src.identity.core.logging import get_logger, mask_email
from src.identity.core.results import ErrorCode, Failure, Result
from src.identity.core.security import generate_token, hash_token, normalize_email
from src.identity.models import AttemptOutcome, AuditAction, AuthSession, Identity, SessionState
from src.identity.models.base import utc_now
from src.identity.repositories import IdentityRepository, SessionRepository
from src.identity.services.audit_service import SystemLogger
from src.identity.services.credential_store import CredentialStore
from src.identity.services.csrf_service import CsrfTokenService
from src.identity.services.rate_limiter import Blocked, RateLimiter
from src.identity.services.totp_service import TotpService

logger = get_logger(__name__)


class LoginState(str, Enum):
    ANONYMOUS = "anonymous"
    NEEDS_SECOND_FACTOR = "needs_second_factor"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class LoginResult:
    """Where a login submission left the state machine.

    ``session_token`` and ``csrf_token`` are set only when AUTHENTICATED,
    ``challenge_token`` only when NEEDS_SECOND_FACTOR.
    """

    state: LoginState
    identity: Identity | None = None
    session_token: str | None = None
    csrf_token: str | None = None
    challenge_token: str | None = None
    failure: Failure | None = None


class SessionManager:
    """Orchestrates credentials, rate limiting and TOTP; owns sessions."""

    def __init__(
        self,
        session: AsyncSession,
        identity_repo: IdentityRepository,
        session_repo: SessionRepository,
        credential_store: CredentialStore,
        rate_limiter: RateLimiter,
        csrf_service: CsrfTokenService,
        audit: SystemLogger,
    ):
        settings = get_settings()
        self.session = session
        self.identity_repo = identity_repo
        self.session_repo = session_repo
        self.credential_store = credential_store
        self.rate_limiter = rate_limiter
        self.csrf_service = csrf_service
        self.audit = audit
        self.idle_timeout = timedelta(minutes=settings.session_idle_timeout_minutes)
        self.challenge_ttl = timedelta(seconds=settings.totp_challenge_ttl_seconds)

    async def login(
        self,
        ctx: RequestContext,
        email: str,
        password: str,
        totp_code: str | None = None,
    ) -> LoginResult:
        """Submit credentials, optionally with the TOTP code on the same request.

        The rate-limit check, credential verification and the attempt record
        run in one transaction, serialized per (IP, identifier).
        """
        identifier = normalize_email(email)
        now = utc_now()

        try:
            await self.rate_limiter.acquire(ctx.ip_address, identifier)
            decision = await self.rate_limiter.check_allowed(ctx.ip_address, identifier, now)
            if isinstance(decision, Blocked):
                self.rate_limiter.record_attempt(ctx, identifier, AttemptOutcome.BLOCKED, now)
                await self.session.commit()
                return await self._rate_limited(ctx, identifier, None, decision)

            verified = await self.credential_store.verify(identifier, password)
            if isinstance(verified, Failure):
                self.rate_limiter.record_attempt(ctx, identifier, AttemptOutcome.FAILURE, now)
                await self.session.commit()
                logger.info("Login failed", email=mask_email(identifier))
                await self.audit.append(
                    None,
                    AuditAction.LOGIN_FAILURE,
                    "login",
                    identifier,
                    detail="reason=invalid_credentials",
                    ctx=ctx,
                )
                return LoginResult(LoginState.ANONYMOUS, failure=verified)

            identity = verified
            if identity.totp_enabled and identity.totp_secret:
                if totp_code is None:
                    challenge_token = await self._create_challenge(identity, ctx, now)
                    await self.session.commit()
                    await self.audit.append(
                        identity.id,
                        AuditAction.LOGIN_TOTP_REQUIRED,
                        "identity",
                        identity.id,
                        ctx=ctx,
                    )
                    return LoginResult(
                        LoginState.NEEDS_SECOND_FACTOR,
                        challenge_token=challenge_token,
                        failure=Failure(ErrorCode.TOTP_REQUIRED),
                    )

                if not TotpService.verify_code(identity.totp_secret, totp_code, now):
                    self.rate_limiter.record_attempt(ctx, identifier, AttemptOutcome.FAILURE, now)
                    challenge_token = await self._create_challenge(identity, ctx, now)
                    await self.session.commit()
                    return await self._totp_failed(ctx, identity, challenge_token)

            result = await self._establish(identity, ctx, identifier, now)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Login failed unexpectedly", error=str(e))
            raise

        return await self._authenticated(ctx, result)

    async def submit_second_factor(
        self, ctx: RequestContext, challenge_token: str, code: str
    ) -> LoginResult:
        """Complete a login that stopped at NeedsSecondFactor."""
        now = utc_now()

        try:
            challenge = await self.session_repo.get_by_token_hash(hash_token(challenge_token))
            if challenge is None or challenge.state != SessionState.PENDING_TOTP.value:
                return LoginResult(
                    LoginState.ANONYMOUS, failure=Failure(ErrorCode.SESSION_EXPIRED)
                )
            if challenge.created_at + self.challenge_ttl <= now:
                await self.session_repo.delete_by_id(challenge.id)
                await self.session.commit()
                return LoginResult(
                    LoginState.ANONYMOUS, failure=Failure(ErrorCode.SESSION_EXPIRED)
                )

            identity = await self.identity_repo.get_by_id(challenge.identity_id)
            if identity is None:
                await self.session_repo.delete_by_id(challenge.id)
                await self.session.commit()
                return LoginResult(
                    LoginState.ANONYMOUS, failure=Failure(ErrorCode.SESSION_EXPIRED)
                )

            identifier = identity.email
            await self.rate_limiter.acquire(ctx.ip_address, identifier)
            decision = await self.rate_limiter.check_allowed(ctx.ip_address, identifier, now)
            if isinstance(decision, Blocked):
                self.rate_limiter.record_attempt(ctx, identifier, AttemptOutcome.BLOCKED, now)
                await self.session.commit()
                return await self._rate_limited(ctx, identifier, challenge_token, decision)

            if (
                identity.totp_enabled
                and identity.totp_secret
                and not TotpService.verify_code(identity.totp_secret, code, now)
            ):
                self.rate_limiter.record_attempt(ctx, identifier, AttemptOutcome.FAILURE, now)
                await self.session.commit()
                return await self._totp_failed(ctx, identity, challenge_token)

            await self.session_repo.delete_by_id(challenge.id)
            result = await self._establish(identity, ctx, identifier, now)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Second factor failed unexpectedly", error=str(e))
            raise

        return await self._authenticated(ctx, result)

    async def resolve(self, ctx: RequestContext, session_token: str | None) -> Result[AuthContext]:
        """Load the session for a request, enforcing the idle timeout.

        An idle session is destroyed here, so its token never works again.
        """
        if not session_token:
            return Failure(ErrorCode.NOT_AUTHENTICATED)

        now = utc_now()
        auth_session = await self.session_repo.get_by_token_hash(hash_token(session_token))
        if auth_session is None or auth_session.state != SessionState.AUTHENTICATED.value:
            return Failure(ErrorCode.NOT_AUTHENTICATED)

        try:
            if self._is_idle(auth_session, now):
                await self.session_repo.delete_by_id(auth_session.id)
                await self.session.commit()
                await self.audit.append(
                    auth_session.identity_id,
                    AuditAction.SESSION_EXPIRED,
                    "session",
                    auth_session.id,
                    ctx=ctx,
                )
                return Failure(ErrorCode.SESSION_EXPIRED)

            identity = await self.identity_repo.get_by_id(auth_session.identity_id)
            if identity is None:
                await self.session_repo.delete_by_id(auth_session.id)
                await self.session.commit()
                return Failure(ErrorCode.NOT_AUTHENTICATED)

            await self.session_repo.touch(auth_session.id, now)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        set_committed_value(auth_session, "last_activity_at", now)
        return AuthContext(request=ctx, session=auth_session, identity=identity)

    async def check_csrf(self, auth: AuthContext, supplied_token: str | None) -> Failure | None:
        """Verify the CSRF token of a state-mutating request."""
        if self.csrf_service.verify(auth.session, supplied_token):
            return None
        logger.warning("CSRF token rejected", identity_id=str(auth.identity.id))
        await self.audit.append(
            auth.identity.id,
            AuditAction.CSRF_REJECTED,
            "session",
            auth.session.id,
            detail="missing" if not supplied_token else "mismatch",
            ctx=auth.request,
        )
        return Failure(ErrorCode.CSRF_MISMATCH)

    async def logout(self, auth: AuthContext) -> None:
        try:
            await self.session_repo.delete_by_id(auth.session.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.audit.append(
            auth.identity.id, AuditAction.LOGOUT, "session", auth.session.id, ctx=auth.request
        )
        logger.info("Logged out", identity_id=str(auth.identity.id))

    def _is_idle(self, auth_session: AuthSession, now: datetime) -> bool:
        return now - auth_session.last_activity_at > self.idle_timeout

    async def _purge_stale(self, identity: Identity, now: datetime) -> None:
        purged = await self.session_repo.delete_stale_for_identity(
            identity.id,
            challenge_cutoff=now - self.challenge_ttl,
            idle_cutoff=now - self.idle_timeout,
        )
        if purged:
            logger.debug("Purged stale sessions", identity_id=str(identity.id), count=purged)

    async def _create_challenge(
        self, identity: Identity, ctx: RequestContext, now: datetime
    ) -> str:
        await self._purge_stale(identity, now)
        token = generate_token()
        self.session_repo.add(
            AuthSession(
                token_hash=hash_token(token),
                identity_id=identity.id,
                state=SessionState.PENDING_TOTP.value,
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent[:512] if ctx.user_agent else None,
                created_at=now,
                last_activity_at=now,
            )
        )
        return token

    async def _establish(
        self, identity: Identity, ctx: RequestContext, identifier: str, now: datetime
    ) -> LoginResult:
        """Create the session and its CSRF token inside the current transaction.

        Expired challenges and idle sessions of the identity are dropped first.
        """
        await self._purge_stale(identity, now)
        token = generate_token()
        auth_session = AuthSession(
            token_hash=hash_token(token),
            identity_id=identity.id,
            state=SessionState.AUTHENTICATED.value,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent[:512] if ctx.user_agent else None,
            created_at=now,
            last_activity_at=now,
        )
        csrf_token = self.csrf_service.issue(auth_session)
        self.session_repo.add(auth_session)
        self.rate_limiter.record_attempt(ctx, identifier, AttemptOutcome.SUCCESS, now)
        return LoginResult(
            LoginState.AUTHENTICATED,
            identity=identity,
            session_token=token,
            csrf_token=csrf_token,
        )

    async def _authenticated(self, ctx: RequestContext, result: LoginResult) -> LoginResult:
        assert result.identity is not None
        await self.audit.append(
            result.identity.id,
            AuditAction.LOGIN_SUCCESS,
            "identity",
            result.identity.id,
            ctx=ctx,
        )
        logger.info("Login succeeded", identity_id=str(result.identity.id))
        return result

    async def _rate_limited(
        self,
        ctx: RequestContext,
        identifier: str,
        challenge_token: str | None,
        decision: Blocked,
    ) -> LoginResult:
        logger.warning(
            "Login rate limited",
            email=mask_email(identifier),
            client_ip=ctx.ip_address,
            retry_after=decision.retry_after,
        )
        await self.audit.append(
            None,
            AuditAction.LOGIN_BLOCKED,
            "login",
            identifier,
            detail=f"retry_after={decision.retry_after}",
            ctx=ctx,
        )
        state = LoginState.NEEDS_SECOND_FACTOR if challenge_token else LoginState.ANONYMOUS
        return LoginResult(
            state,
            challenge_token=challenge_token,
            failure=Failure(ErrorCode.RATE_LIMITED, retry_after=decision.retry_after),
        )

    async def _totp_failed(
        self, ctx: RequestContext, identity: Identity, challenge_token: str
    ) -> LoginResult:
        await self.audit.append(
            identity.id,
            AuditAction.LOGIN_TOTP_FAILURE,
            "identity",
            identity.id,
            ctx=ctx,
        )
        return LoginResult(
            LoginState.NEEDS_SECOND_FACTOR,
            challenge_token=challenge_token,
            failure=Failure(ErrorCode.TOTP_INVALID),
        )
