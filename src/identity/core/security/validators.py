"""Input normalization and validation helpers."""

import re
from typing import Final

TOTP_CODE_REGEX: Final[str] = r"^[0-9]{6}$"
_TOTP_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(TOTP_CODE_REGEX)


def normalize_email(email: str) -> str:
    """Normalize an email for storage and lookup (emails are case-insensitive)."""
    return email.strip().lower()


def is_valid_totp_code(code: str) -> bool:
    """Check a one-time code is exactly six ASCII digits."""
    return bool(_TOTP_CODE_PATTERN.fullmatch(code))
