"""Time-based one-time passwords (RFC 6238) with pyotp."""

import binascii
from datetime import UTC, datetime

import pyotp
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from src.identity.core.config import get_settings
from src.identity.core.context import AuthContext
from src.identity.core.logging import get_logger
from src.identity.core.results import ErrorCode, Failure, Result
from src.identity.core.security import is_valid_totp_code
from src.identity.models import AuditAction, Identity
from src.identity.models.base import utc_now
from src.identity.repositories import IdentityRepository
from src.identity.services.audit_service import SystemLogger

logger = get_logger(__name__)

# 32 base32 characters = 160 bits, the RFC 4226 recommended key size
SECRET_LENGTH = 32

# Accept the previous and next 30s step for clock skew
VALID_WINDOW = 1


def _as_aware(now: datetime | None) -> datetime:
    # pyotp treats naive datetimes as local time; stored times are naive UTC
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


def _reflect_totp(identity: Identity, secret: str | None, verified_at: datetime | None) -> None:
    # Already written by enable_totp/disable_totp; update the loaded object without dirtying it
    set_committed_value(identity, "totp_secret", secret)
    set_committed_value(identity, "totp_enabled", secret is not None)
    set_committed_value(identity, "totp_verified_at", verified_at)


class TotpService:
    """Generates secrets, verifies codes, and toggles TOTP on an identity."""

    def __init__(
        self,
        identity_repo: IdentityRepository,
        session: AsyncSession,
        audit: SystemLogger,
    ):
        self.identity_repo = identity_repo
        self.session = session
        self.audit = audit

    @staticmethod
    def generate_secret() -> str:
        return pyotp.random_base32(length=SECRET_LENGTH)

    @staticmethod
    def provisioning_uri(email: str, secret: str) -> str:
        """``otpauth://totp/...`` URI for authenticator apps (usually shown as a QR code)."""
        return pyotp.TOTP(secret).provisioning_uri(
            name=email, issuer_name=get_settings().totp_issuer
        )

    @staticmethod
    def code_at(secret: str, now: datetime | None = None, step_offset: int = 0) -> str:
        return pyotp.TOTP(secret).at(_as_aware(now), step_offset)

    @staticmethod
    def verify_code(secret: str, code: str, now: datetime | None = None) -> bool:
        """Check a code for ``now`` and one step either side.

        pyotp compares each candidate in constant time.
        """
        if not is_valid_totp_code(code):
            return False
        try:
            return pyotp.TOTP(secret).verify(
                code, for_time=_as_aware(now), valid_window=VALID_WINDOW
            )
        except binascii.Error:
            # Not decodable base32, so no code can match
            return False

    async def enable(self, auth: AuthContext, secret: str, code: str) -> Result[Identity]:
        """Enable TOTP after proving possession of ``secret`` with a current code."""
        identity = auth.identity
        if identity.totp_enabled:
            return Failure(ErrorCode.TOTP_ALREADY_ENABLED)
        if not self.verify_code(secret, code):
            await self.audit.append(
                identity.id,
                AuditAction.TOTP_ENABLE,
                "identity",
                identity.id,
                detail="outcome=failure reason=totp_invalid",
                ctx=auth.request,
            )
            return Failure(ErrorCode.TOTP_INVALID)

        now = utc_now()
        try:
            # Secret and flag change in one statement, guarded on the flag
            enabled = await self.identity_repo.enable_totp(identity.id, secret, now)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to enable TOTP", identity_id=str(identity.id), error=str(e))
            raise

        if not enabled:
            # Another request enrolled first; its secret stays
            logger.warning("Concurrent TOTP enable lost", identity_id=str(identity.id))
            return Failure(ErrorCode.TOTP_ALREADY_ENABLED)

        _reflect_totp(identity, secret, now)
        await self.audit.append(
            identity.id, AuditAction.TOTP_ENABLE, "identity", identity.id, ctx=auth.request
        )
        logger.info("TOTP enabled", identity_id=str(identity.id))
        return identity

    async def disable(self, auth: AuthContext, code: str) -> Result[Identity]:
        """Disable TOTP. Requires a current code from the enrolled authenticator."""
        identity = auth.identity
        if not identity.totp_enabled or identity.totp_secret is None:
            return Failure(ErrorCode.TOTP_NOT_ENABLED)
        if not self.verify_code(identity.totp_secret, code):
            await self.audit.append(
                identity.id,
                AuditAction.TOTP_DISABLE,
                "identity",
                identity.id,
                detail="outcome=failure reason=totp_invalid",
                ctx=auth.request,
            )
            return Failure(ErrorCode.TOTP_INVALID)

        try:
            disabled = await self.identity_repo.disable_totp(identity.id, identity.totp_secret)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to disable TOTP", identity_id=str(identity.id), error=str(e))
            raise

        if not disabled:
            return Failure(ErrorCode.TOTP_NOT_ENABLED)

        _reflect_totp(identity, None, None)
        await self.audit.append(
            identity.id, AuditAction.TOTP_DISABLE, "identity", identity.id, ctx=auth.request
        )
        logger.info("TOTP disabled", identity_id=str(identity.id))
        return identity
