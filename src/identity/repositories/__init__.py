"""Repository layer - data access abstraction."""

from src.identity.repositories.attempt import AttemptRecordRepository
from src.identity.repositories.audit import AuditEntryRepository
from src.identity.repositories.base import BaseRepository
from src.identity.repositories.identity import IdentityRepository
from src.identity.repositories.invitation import InvitationRepository
from src.identity.repositories.lock import StoreLockRepository
from src.identity.repositories.session import SessionRepository

__all__ = [
    "AttemptRecordRepository",
    "AuditEntryRepository",
    "BaseRepository",
    "IdentityRepository",
    "InvitationRepository",
    "SessionRepository",
    "StoreLockRepository",
]
