"""Model exports.

Import from here: `from src.identity.models import Identity, Invitation`
"""

from src.identity.models.audit import AuditAction, AuditEntry
from src.identity.models.auth import AttemptRecord, AuthSession, Invitation, StoreLock
from src.identity.models.enums import (
    AttemptOutcome,
    InvitationStatus,
    Permission,
    Role,
    SessionState,
)
from src.identity.models.identity import Identity

__all__ = [
    # Enums
    "AttemptOutcome",
    "AuditAction",
    "InvitationStatus",
    "Permission",
    "Role",
    "SessionState",
    # Tables
    "AttemptRecord",
    "AuditEntry",
    "AuthSession",
    "Identity",
    "Invitation",
    "StoreLock",
]
