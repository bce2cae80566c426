"""Invitation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from src.identity.api.dependencies import (
    CsrfProtectedAuth,
    InvitationServiceDep,
    require_permission,
)
from src.identity.core.context import AuthContext
from src.identity.core.exceptions import DomainError
from src.identity.core.results import Failure
from src.identity.models import Permission, Role
from src.identity.schemas.common import ApiResponse
from src.identity.schemas.invitation import (
    InvitationCreateRequest,
    InvitationCreateResponse,
    InvitationListResponse,
    InvitationRead,
    InvitationValidateResponse,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])

InvitationManager = Annotated[
    AuthContext, Depends(require_permission(Permission.MANAGE_INVITATIONS))
]


@router.post(
    "",
    response_model=InvitationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invitation",
    description="Invite an email address with a role at most the caller's own.",
    responses={
        403: {"description": "Missing permission, role too high, or CSRF rejected"},
        409: {"description": "Email already registered or invitation pending"},
    },
)
async def create_invitation(
    data: InvitationCreateRequest,
    auth: CsrfProtectedAuth,
    invitation_service: InvitationServiceDep,
) -> InvitationCreateResponse:
    result = await invitation_service.create(auth, data.email, data.role, data.expires_in_hours)
    if isinstance(result, Failure):
        raise DomainError(result)
    invitation, token = result
    return InvitationCreateResponse(
        message="Invitation sent",
        token=token,
        invitation=InvitationRead.model_validate(invitation),
    )


@router.get(
    "",
    response_model=InvitationListResponse,
    summary="List pending invitations",
)
async def list_invitations(
    auth: InvitationManager,
    invitation_service: InvitationServiceDep,
    cursor: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> InvitationListResponse:
    items, next_cursor, has_more = await invitation_service.list_pending(cursor, limit)
    return InvitationListResponse(
        items=[InvitationRead.model_validate(i) for i in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/validate/{token}",
    response_model=InvitationValidateResponse,
    summary="Check an invitation token",
    responses={
        404: {"description": "Unknown token"},
        409: {"description": "Already accepted"},
        410: {"description": "Expired"},
    },
)
async def validate_invitation(
    token: str,
    invitation_service: InvitationServiceDep,
) -> InvitationValidateResponse:
    """Public lookup used by the registration form. Does not consume the token."""
    result = await invitation_service.validate(token)
    if isinstance(result, Failure):
        raise DomainError(result)
    return InvitationValidateResponse(
        email=result.email,
        role=Role(result.role),
        expires_at=result.expires_at,
    )


@router.delete(
    "/{invitation_id}",
    response_model=ApiResponse,
    summary="Revoke a pending invitation",
)
async def delete_invitation(
    invitation_id: UUID,
    auth: CsrfProtectedAuth,
    invitation_service: InvitationServiceDep,
) -> ApiResponse:
    failure = await invitation_service.delete(auth, invitation_id)
    if failure is not None:
        raise DomainError(failure)
    return ApiResponse(message="Invitation revoked")
