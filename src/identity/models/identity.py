"""Identity model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from src.identity.models.base import utc_now
from src.identity.models.enums import Role


class Identity(SQLModel, table=True):
    """A person who can log in.

    The TOTP secret exists if and only if TOTP is enabled; the check constraint
    makes a half-enabled state unrepresentable in the store.
    """

    __tablename__ = "identities"
    __table_args__ = (
        CheckConstraint(
            "(totp_enabled AND totp_secret IS NOT NULL) "
            "OR (NOT totp_enabled AND totp_secret IS NULL)",
            name="ck_identities_totp_secret_iff_enabled",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    hashed_password: str = Field(max_length=255)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    role: str = Field(default=Role.NONE.value, max_length=32)
    totp_secret: str | None = Field(default=None, max_length=32)
    totp_enabled: bool = Field(default=False)
    totp_verified_at: datetime | None = Field(default=None)
    alumni_validated: bool = Field(default=False)
    alumni_status_requested_at: datetime | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
