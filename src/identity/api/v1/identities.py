"""Identity administration endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from src.identity.api.dependencies import CsrfProtectedAuth, IdentityServiceDep
from src.identity.core.exceptions import DomainError
from src.identity.core.results import Failure
from src.identity.schemas.identity import (
    AlumniAccountCreateRequest,
    IdentityRead,
    IdentityResponse,
    RoleChangeRequest,
)

router = APIRouter(prefix="/identities", tags=["identities"])


@router.patch(
    "/{identity_id}/role",
    response_model=IdentityResponse,
    responses={403: {"description": "Caller does not outrank the old and new role"}},
)
async def change_role(
    identity_id: UUID,
    data: RoleChangeRequest,
    auth: CsrfProtectedAuth,
    identity_service: IdentityServiceDep,
) -> IdentityResponse:
    result = await identity_service.change_role(auth, identity_id, data.role)
    if isinstance(result, Failure):
        raise DomainError(result)
    return IdentityResponse(message="Role updated", identity=IdentityRead.model_validate(result))


@router.post(
    "/alumni",
    response_model=IdentityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_alumni(
    data: AlumniAccountCreateRequest,
    auth: CsrfProtectedAuth,
    identity_service: IdentityServiceDep,
) -> IdentityResponse:
    """Create an already-validated alumni account without an invitation."""
    result = await identity_service.create_alumni(
        auth, data.email, data.first_name, data.last_name, data.password
    )
    if isinstance(result, Failure):
        raise DomainError(result)
    return IdentityResponse(
        message="Alumni account created", identity=IdentityRead.model_validate(result)
    )
