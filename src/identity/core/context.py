"""Explicit per-request context passed into every service call."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.identity.models import AuthSession, Identity, Role


@dataclass(frozen=True)
class RequestContext:
    """Who is calling from where. Built once per request."""

    ip_address: str
    user_agent: str | None = None
    request_id: str | None = None


@dataclass(frozen=True)
class AuthContext:
    """Request context of an authenticated caller.

    ``session`` carries the bound CSRF token hash; ``identity`` is the
    session owner as loaded for this request.
    """

    request: RequestContext
    session: "AuthSession"
    identity: "Identity"

    @property
    def role(self) -> "Role":
        from src.identity.models import Role

        return Role(self.identity.role)
