"""FastAPI dependency injection definitions.

Re-exports all dependencies for convenience.
"""

from src.identity.api.dependencies.auth import (
    CsrfProtectedAuth,
    CurrentAuth,
    RequestCtx,
    get_auth_context,
    get_request_context,
    require_csrf,
    require_permission,
)
from src.identity.api.dependencies.db import (
    AuditDBSession,
    DBEngine,
    DBSession,
    get_audit_db_session,
    get_db_engine,
    get_db_session,
)
from src.identity.api.dependencies.repositories import (
    AttemptRepo,
    IdentityRepo,
    InvitationRepo,
    LockRepo,
    SessionRepo,
)
from src.identity.api.dependencies.services import (
    AlumniWorkflowDep,
    IdentityServiceDep,
    InvitationServiceDep,
    SessionManagerDep,
    SystemLoggerDep,
    TotpServiceDep,
)

__all__ = [
    # Database
    "AuditDBSession",
    "DBEngine",
    "DBSession",
    "get_audit_db_session",
    "get_db_engine",
    "get_db_session",
    # Auth
    "CsrfProtectedAuth",
    "CurrentAuth",
    "RequestCtx",
    "get_auth_context",
    "get_request_context",
    "require_csrf",
    "require_permission",
    # Repositories
    "AttemptRepo",
    "IdentityRepo",
    "InvitationRepo",
    "LockRepo",
    "SessionRepo",
    # Services
    "AlumniWorkflowDep",
    "IdentityServiceDep",
    "InvitationServiceDep",
    "SessionManagerDep",
    "SystemLoggerDep",
    "TotpServiceDep",
]
