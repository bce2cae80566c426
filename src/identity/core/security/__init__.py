"""Security utilities - crypto and validators.

Re-exports all security-related functions for convenience.
"""

from src.identity.core.security.crypto import (
    DUMMY_PASSWORD_HASH,
    generate_token,
    hash_password,
    hash_token,
    tokens_match,
    verify_password,
)
from src.identity.core.security.validators import is_valid_totp_code, normalize_email

__all__ = [
    # Crypto
    "DUMMY_PASSWORD_HASH",
    "generate_token",
    "hash_password",
    "hash_token",
    "tokens_match",
    "verify_password",
    # Validators
    "is_valid_totp_code",
    "normalize_email",
]
