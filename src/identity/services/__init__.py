from src.identity.services.alumni_service import AlumniValidationWorkflow
from src.identity.services.audit_service import SystemLogger
from src.identity.services.credential_store import CredentialStore
from src.identity.services.csrf_service import CsrfTokenService
from src.identity.services.identity_service import IdentityService
from src.identity.services.invitation_service import InvitationService
from src.identity.services.rate_limiter import RateLimiter
from src.identity.services.session_manager import LoginResult, LoginState, SessionManager
from src.identity.services.totp_service import TotpService

__all__ = [
    "AlumniValidationWorkflow",
    "CredentialStore",
    "CsrfTokenService",
    "IdentityService",
    "InvitationService",
    "LoginResult",
    "LoginState",
    "RateLimiter",
    "SessionManager",
    "SystemLogger",
    "TotpService",
]
