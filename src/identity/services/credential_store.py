"""Credential verification against stored Argon2 hashes."""

from src.identity.core.results import ErrorCode, Failure, Result
from src.identity.core.security import DUMMY_PASSWORD_HASH, normalize_email, verify_password
from src.identity.models import Identity
from src.identity.repositories import IdentityRepository


class CredentialStore:
    """Verifies email + password pairs."""

    def __init__(self, identity_repo: IdentityRepository):
        self.identity_repo = identity_repo

    async def verify(self, email: str, password: str) -> Result[Identity]:
        """Return the identity for a correct email/password, else InvalidCredentials.

        Always performs exactly one Argon2 verification so the response time
        does not reveal whether the email exists.
        """
        identity = await self.identity_repo.get_by_email(normalize_email(email))

        password_hash = identity.hashed_password if identity else DUMMY_PASSWORD_HASH
        password_valid = verify_password(password, password_hash)

        if identity is None or not password_valid:
            return Failure(ErrorCode.INVALID_CREDENTIALS)
        return identity
