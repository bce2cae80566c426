"""Cryptographic utilities - password hashing, opaque tokens, and token hashing."""

import secrets
from hashlib import sha256

import argon2

from src.identity.core.config import get_settings

# 32 bytes of entropy, URL-safe base64 (43 chars)
TOKEN_BYTES = 32


def generate_token() -> str:
    """Generate an opaque, high-entropy token (session ids, CSRF, invitations)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a token using SHA256 for secure storage."""
    return sha256(token.encode()).hexdigest()


def tokens_match(token: str | None, stored_hash: str | None) -> bool:
    """Constant-time comparison of a supplied token against a stored hash."""
    if not token or not stored_hash:
        return False
    return secrets.compare_digest(hash_token(token), stored_hash)


def _create_password_hasher() -> argon2.PasswordHasher:
    """Create password hasher with settings from config."""
    settings = get_settings()
    return argon2.PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


_password_hasher = _create_password_hasher()

# Verified against when the email is unknown, so both paths cost one argon2 verify
DUMMY_PASSWORD_HASH = _password_hasher.hash(secrets.token_urlsafe(16))


def hash_password(password: str) -> str:
    """Hash password using Argon2id."""
    return _password_hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash. Returns False on any error."""
    try:
        _password_hasher.verify(hashed, password)
        return True
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.VerificationError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False
