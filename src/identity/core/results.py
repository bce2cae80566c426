"""Discriminated results for expected failures.

Services return ``T | Failure`` instead of raising for conditions callers are
expected to handle (bad password, expired token, missing permission).
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    TOTP_REQUIRED = "totp_required"
    TOTP_INVALID = "totp_invalid"
    TOTP_ALREADY_ENABLED = "totp_already_enabled"
    TOTP_NOT_ENABLED = "totp_not_enabled"
    CSRF_MISMATCH = "csrf_mismatch"
    NOT_AUTHENTICATED = "not_authenticated"
    SESSION_EXPIRED = "session_expired"
    INVITATION_NOT_FOUND = "invitation_not_found"
    INVITATION_EXPIRED = "invitation_expired"
    INVITATION_ALREADY_ACCEPTED = "invitation_already_accepted"
    INVITATION_PENDING = "invitation_pending"
    EMAIL_ALREADY_REGISTERED = "email_already_registered"
    IDENTITY_NOT_FOUND = "identity_not_found"
    PERMISSION_DENIED = "permission_denied"
    ALUMNI_NOT_VALIDATED = "alumni_not_validated"
    VALIDATION_ERROR = "validation_error"


# User-facing messages. Never say which of email or password was wrong.
DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorCode.RATE_LIMITED: "Too many failed attempts. Please try again later",
    ErrorCode.TOTP_REQUIRED: "A one-time code is required",
    ErrorCode.TOTP_INVALID: "Invalid one-time code",
    ErrorCode.TOTP_ALREADY_ENABLED: "Two-factor authentication is already enabled",
    ErrorCode.TOTP_NOT_ENABLED: "Two-factor authentication is not enabled",
    ErrorCode.CSRF_MISMATCH: "Invalid or missing CSRF token",
    ErrorCode.NOT_AUTHENTICATED: "Not authenticated",
    ErrorCode.SESSION_EXPIRED: "Session expired. Please log in again",
    ErrorCode.INVITATION_NOT_FOUND: "Invitation not found",
    ErrorCode.INVITATION_EXPIRED: "Invitation has expired",
    ErrorCode.INVITATION_ALREADY_ACCEPTED: "Invitation has already been used",
    ErrorCode.INVITATION_PENDING: "An open invitation already exists for this email",
    ErrorCode.EMAIL_ALREADY_REGISTERED: "Email already registered",
    ErrorCode.IDENTITY_NOT_FOUND: "Identity not found",
    ErrorCode.PERMISSION_DENIED: "Permission denied",
    ErrorCode.ALUMNI_NOT_VALIDATED: "Alumni status has not been validated yet",
    ErrorCode.VALIDATION_ERROR: "Invalid request",
}


@dataclass(frozen=True)
class Failure:
    """An expected, handled failure."""

    code: ErrorCode
    message: str = ""
    retry_after: int | None = None

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", DEFAULT_MESSAGES[self.code])


type Result[T] = T | Failure
