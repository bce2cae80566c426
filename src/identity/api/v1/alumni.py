"""Alumni validation workflow endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.identity.api.dependencies import AlumniWorkflowDep, CsrfProtectedAuth, require_permission
from src.identity.core.context import AuthContext
from src.identity.core.exceptions import DomainError
from src.identity.core.results import Failure
from src.identity.models import Permission
from src.identity.schemas.alumni import AlumniValidateRequest, PendingAlumniResponse
from src.identity.schemas.identity import IdentityRead, IdentityResponse

router = APIRouter(prefix="/alumni", tags=["alumni"])

AlumniValidator = Annotated[AuthContext, Depends(require_permission(Permission.VALIDATE_ALUMNI))]


@router.post("/status-request", response_model=IdentityResponse)
async def request_status(
    auth: CsrfProtectedAuth,
    workflow: AlumniWorkflowDep,
) -> IdentityResponse:
    """Ask the board to validate the caller's alumni status. Idempotent."""
    result = await workflow.request_status(auth)
    if isinstance(result, Failure):
        raise DomainError(result)
    return IdentityResponse(
        message="Alumni status requested",
        identity=IdentityRead.model_validate(result),
    )


@router.get("/pending", response_model=PendingAlumniResponse)
async def list_pending(
    auth: AlumniValidator,
    workflow: AlumniWorkflowDep,
    cursor: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> PendingAlumniResponse:
    items, next_cursor, has_more = await workflow.list_pending(cursor, limit)
    return PendingAlumniResponse(
        items=[IdentityRead.model_validate(i) for i in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("/validate", response_model=IdentityResponse)
async def validate(
    data: AlumniValidateRequest,
    auth: CsrfProtectedAuth,
    workflow: AlumniWorkflowDep,
) -> IdentityResponse:
    """Approve or reject an alumni's request."""
    result = await workflow.validate(auth, data.target_identity_id, data.approve)
    if isinstance(result, Failure):
        raise DomainError(result)
    return IdentityResponse(
        message="Alumni approved" if data.approve else "Alumni rejected",
        identity=IdentityRead.model_validate(result),
    )
