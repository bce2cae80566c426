"""Identity schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.identity.models import Role
from src.identity.schemas.common import ApiResponse
from src.identity.schemas.passwords import validate_password_strength


class IdentityRead(BaseModel):
    id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    role: Role
    totp_enabled: bool
    alumni_validated: bool
    alumni_status_requested_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class IdentityResponse(ApiResponse):
    identity: IdentityRead


class RoleChangeRequest(BaseModel):
    role: Role


class AlumniAccountCreateRequest(BaseModel):
    """Board creates an alumni account directly, without an invitation."""

    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8, max_length=100)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return validate_password_strength(v)
