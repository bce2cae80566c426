"""Authentication models - attempts, sessions, invitations, store locks."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.identity.models.base import utc_now
from src.identity.models.enums import AttemptOutcome, InvitationStatus, SessionState


class AttemptRecord(SQLModel, table=True):
    """One authentication attempt. Append-only."""

    __tablename__ = "attempt_records"
    __table_args__ = (
        Index("ix_attempt_records_pair_time", "ip_address", "identifier", "attempted_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    ip_address: str = Field(max_length=45)
    identifier: str = Field(max_length=255)
    outcome: str = Field(default=AttemptOutcome.FAILURE.value, max_length=16)
    user_agent: str | None = Field(default=None, max_length=512)
    attempted_at: datetime = Field(default_factory=utc_now)


class StoreLock(SQLModel, table=True):
    """Serialization point for check-then-write sequences.

    Touching a row takes its write lock until the surrounding transaction ends
    (row lock on PostgreSQL, database write lock on SQLite).
    """

    __tablename__ = "store_locks"

    key: str = Field(max_length=320, primary_key=True)
    touched_at: datetime = Field(default_factory=utc_now)


class AuthSession(SQLModel, table=True):
    """Server-side session. Only hashes of the session and CSRF tokens are stored."""

    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    identity_id: UUID = Field(foreign_key="identities.id", ondelete="CASCADE", index=True)
    state: str = Field(default=SessionState.AUTHENTICATED.value, max_length=16)
    csrf_token_hash: str | None = Field(default=None, max_length=64)
    ip_address: str | None = Field(default=None, max_length=45)
    user_agent: str | None = Field(default=None, max_length=512)
    created_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)


class Invitation(SQLModel, table=True):
    """Single-use registration invitation. ``accepted_at`` is set exactly once."""

    __tablename__ = "invitations"
    __table_args__ = (Index("ix_invitations_email_accepted", "email", "accepted_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(max_length=255, index=True)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    role: str = Field(max_length=32)
    created_by_id: UUID = Field(foreign_key="identities.id")
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    accepted_at: datetime | None = Field(default=None)
    accepted_by_id: UUID | None = Field(default=None, foreign_key="identities.id")

    def status_at(self, now: datetime) -> InvitationStatus:
        if self.accepted_at is not None:
            return InvitationStatus.ACCEPTED
        if self.expires_at <= now:
            return InvitationStatus.EXPIRED
        return InvitationStatus.PENDING

    @property
    def status(self) -> InvitationStatus:
        return self.status_at(utc_now())
