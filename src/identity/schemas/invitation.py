"""Invitation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from src.identity.models import InvitationStatus, Role
from src.identity.schemas.common import ApiResponse
from src.identity.schemas.pagination import PaginatedResponse


class InvitationCreateRequest(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER
    expires_in_hours: int | None = Field(default=None, ge=1, le=168)


class InvitationRead(BaseModel):
    id: UUID
    email: str
    role: Role
    status: InvitationStatus
    created_by_id: UUID
    created_at: datetime
    expires_at: datetime

    model_config = {"from_attributes": True}


class InvitationCreateResponse(ApiResponse):
    """The plaintext token is returned once, at creation."""

    token: str
    invitation: InvitationRead


class InvitationValidateResponse(ApiResponse):
    """Public info shown on the registration form."""

    email: str
    role: Role
    expires_at: datetime


InvitationListResponse = PaginatedResponse[InvitationRead]
