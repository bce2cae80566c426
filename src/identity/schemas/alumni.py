"""Alumni workflow schemas."""

from uuid import UUID

from pydantic import BaseModel

from src.identity.schemas.identity import IdentityRead
from src.identity.schemas.pagination import PaginatedResponse


class AlumniValidateRequest(BaseModel):
    target_identity_id: UUID
    approve: bool


PendingAlumniResponse = PaginatedResponse[IdentityRead]
