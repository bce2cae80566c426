"""Request context, session authentication and authorization dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from asgi_correlation_id import correlation_id
from fastapi import Depends, Request

from src.identity.api.dependencies.services import SessionManagerDep, SystemLoggerDep
from src.identity.core.config import get_settings
from src.identity.core.context import AuthContext, RequestContext
from src.identity.core.exceptions import DomainError
from src.identity.core.logging import bind_identity_context
from src.identity.core.rate_limit import get_client_ip
from src.identity.core.results import Failure
from src.identity.models import AuditAction, Permission
from src.identity.services import permission_model


def get_request_context(request: Request) -> RequestContext:
    """Build the explicit context value handed to services."""
    return RequestContext(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        request_id=correlation_id.get(),
    )


RequestCtx = Annotated[RequestContext, Depends(get_request_context)]


async def get_auth_context(
    request: Request,
    ctx: RequestCtx,
    session_manager: SessionManagerDep,
) -> AuthContext:
    """Resolve the session cookie. Expired or unknown sessions are rejected."""
    token = request.cookies.get(get_settings().session_cookie_name)
    result = await session_manager.resolve(ctx, token)
    if isinstance(result, Failure):
        raise DomainError(result)

    bind_identity_context(result.identity.id, result.identity.role, result.identity.email)
    return result


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]


async def require_csrf(
    request: Request,
    auth: CurrentAuth,
    session_manager: SessionManagerDep,
) -> AuthContext:
    """Require the session's CSRF token in the configured header.

    Runs before the endpoint body, so a rejected request has no side effect.
    """
    supplied = request.headers.get(get_settings().csrf_header_name)
    failure = await session_manager.check_csrf(auth, supplied)
    if failure is not None:
        raise DomainError(failure)
    return auth


CsrfProtectedAuth = Annotated[AuthContext, Depends(require_csrf)]


def require_permission(permission: Permission) -> Callable[..., Awaitable[AuthContext]]:
    """Dependency factory: the caller must hold ``permission``."""

    async def _require(auth: CurrentAuth, audit: SystemLoggerDep) -> AuthContext:
        failure = permission_model.authorize(auth.identity, permission)
        if failure is not None:
            await audit.append(
                auth.identity.id,
                AuditAction.PERMISSION_DENIED,
                "permission",
                permission.value,
                ctx=auth.request,
            )
            raise DomainError(failure)
        return auth

    return _require
