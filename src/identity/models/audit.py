"""Audit entry model for security-relevant events."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.identity.models.base import utc_now


class AuditAction(str, Enum):
    """Audit action types for type-safe logging."""

    # Authentication
    LOGIN_SUCCESS = "login.success"
    LOGIN_FAILURE = "login.failure"
    LOGIN_BLOCKED = "login.blocked"
    LOGIN_TOTP_REQUIRED = "login.totp_required"
    LOGIN_TOTP_FAILURE = "login.totp_failure"
    LOGOUT = "logout"
    SESSION_EXPIRED = "session.expired"
    CSRF_REJECTED = "csrf.rejected"

    # Second factor
    TOTP_ENABLE = "totp.enable"
    TOTP_DISABLE = "totp.disable"

    # Invitations
    INVITATION_CREATE = "invitation.create"
    INVITATION_DELETE = "invitation.delete"
    INVITATION_CONSUME = "invitation.consume"
    INVITATION_CONSUME_FAILURE = "invitation.consume_failure"

    # Identities
    IDENTITY_CREATE = "identity.create"
    ROLE_CHANGE = "identity.role_change"
    PERMISSION_DENIED = "permission.denied"

    # Alumni workflow
    ALUMNI_REQUEST = "alumni.request"
    ALUMNI_APPROVE = "alumni.approve"
    ALUMNI_REJECT = "alumni.reject"


class AuditEntry(SQLModel, table=True):
    """Append-only audit entry. Never updated or deleted."""

    __tablename__ = "audit_entries"
    __table_args__ = (
        Index("ix_audit_entries_actor_created", "actor_id", "created_at"),
        Index("ix_audit_entries_action_created", "action", "created_at"),
        Index("ix_audit_entries_target", "target_type", "target_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    actor_id: UUID | None = Field(default=None)
    action: str = Field(max_length=50)
    target_type: str = Field(max_length=50)
    target_id: str | None = Field(default=None, max_length=255)
    detail: str | None = Field(default=None, max_length=2000)
    ip_address: str | None = Field(default=None, max_length=45)
    user_agent: str | None = Field(default=None, max_length=512)
    request_id: str | None = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utc_now)
