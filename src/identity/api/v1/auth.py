"""Authentication endpoints: login, second factor, session and TOTP."""

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse
from starlette.requests import Request

from src.identity.api.dependencies import (
    CsrfProtectedAuth,
    CurrentAuth,
    InvitationServiceDep,
    RequestCtx,
    SessionManagerDep,
    TotpServiceDep,
)
from src.identity.core.config import get_settings
from src.identity.core.exceptions import DomainError, failure_response
from src.identity.core.rate_limit import limiter
from src.identity.core.results import ErrorCode, Failure
from src.identity.schemas.auth import (
    CurrentSessionResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    TotpDisableRequest,
    TotpEnableRequest,
    TotpLoginRequest,
    TotpSetupResponse,
)
from src.identity.schemas.common import ApiResponse
from src.identity.schemas.identity import IdentityRead, IdentityResponse
from src.identity.services import LoginResult, LoginState, TotpService

router = APIRouter(prefix="/auth", tags=["auth"])

CSRF_COOKIE_NAME = "csrf_token"


def _set_session_cookies(response: Response, result: LoginResult) -> None:
    """Session token is HttpOnly. The CSRF cookie is readable by the frontend."""
    settings = get_settings()
    max_age = settings.session_idle_timeout_minutes * 60
    response.set_cookie(
        settings.session_cookie_name,
        result.session_token or "",
        max_age=max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="strict",
        path="/",
    )
    response.set_cookie(
        CSRF_COOKIE_NAME,
        result.csrf_token or "",
        max_age=max_age,
        httponly=False,
        secure=settings.session_cookie_secure,
        samesite="strict",
        path="/",
    )


def _clear_session_cookies(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie(CSRF_COOKIE_NAME, path="/")


def _login_response(result: LoginResult, response: Response) -> LoginResponse | JSONResponse:
    """Map the state machine outcome onto the HTTP response."""
    if result.state is LoginState.AUTHENTICATED:
        _set_session_cookies(response, result)
        return LoginResponse(
            message="Logged in",
            session_established=True,
            csrf_token=result.csrf_token,
            identity=IdentityRead.model_validate(result.identity),
        )

    failure = result.failure or Failure(ErrorCode.INVALID_CREDENTIALS)
    if failure.code is ErrorCode.TOTP_REQUIRED:
        # Not an error: the client continues with /auth/login/totp
        return LoginResponse(
            message=failure.message,
            requires_totp=True,
            challenge_token=result.challenge_token,
        )
    if result.challenge_token is not None:
        return failure_response(
            failure, extra={"requires_totp": True, "challenge_token": result.challenge_token}
        )
    raise DomainError(failure)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        200: {"description": "Session established, or a second factor is required"},
        401: {"description": "Invalid credentials or TOTP code"},
        429: {"description": "Too many failed attempts for this IP and identifier"},
    },
)
@limiter.limit("20/minute")
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    ctx: RequestCtx,
    session_manager: SessionManagerDep,
) -> LoginResponse | JSONResponse:
    """Authenticate with email and password, and TOTP code when enabled.

    Without a TOTP code, an identity with TOTP enabled gets a challenge token
    to complete the login through ``/auth/login/totp``.
    """
    result = await session_manager.login(ctx, data.email, data.password, data.totp_code)
    return _login_response(result, response)


@router.post(
    "/login/totp",
    response_model=LoginResponse,
    responses={
        401: {"description": "Invalid code or expired challenge"},
        429: {"description": "Too many failed attempts"},
    },
)
@limiter.limit("20/minute")
async def login_totp(
    request: Request,
    response: Response,
    data: TotpLoginRequest,
    ctx: RequestCtx,
    session_manager: SessionManagerDep,
) -> LoginResponse | JSONResponse:
    """Complete a login that requires a second factor."""
    result = await session_manager.submit_second_factor(ctx, data.challenge_token, data.code)
    return _login_response(result, response)


@router.post("/logout", response_model=ApiResponse)
async def logout(
    auth: CsrfProtectedAuth,
    response: Response,
    session_manager: SessionManagerDep,
) -> ApiResponse:
    """Destroy the current session."""
    await session_manager.logout(auth)
    _clear_session_cookies(response)
    return ApiResponse(message="Logged out")


@router.get("/me", response_model=CurrentSessionResponse)
async def me(auth: CurrentAuth) -> CurrentSessionResponse:
    """Return the identity bound to the current session."""
    return CurrentSessionResponse(identity=IdentityRead.model_validate(auth.identity))


@router.post("/totp/setup", response_model=TotpSetupResponse)
async def totp_setup(auth: CsrfProtectedAuth) -> TotpSetupResponse:
    """Generate a secret to enroll in an authenticator app.

    Nothing is stored. The secret becomes active once confirmed with a code
    through ``/auth/totp/enable``.
    """
    if auth.identity.totp_enabled:
        raise DomainError(Failure(ErrorCode.TOTP_ALREADY_ENABLED))
    secret = TotpService.generate_secret()
    return TotpSetupResponse(
        secret=secret,
        provisioning_uri=TotpService.provisioning_uri(auth.identity.email, secret),
    )


@router.post("/totp/enable", response_model=IdentityResponse)
async def totp_enable(
    data: TotpEnableRequest,
    auth: CsrfProtectedAuth,
    totp_service: TotpServiceDep,
) -> IdentityResponse:
    result = await totp_service.enable(auth, data.secret, data.code)
    if isinstance(result, Failure):
        raise DomainError(result)
    return IdentityResponse(
        message="Two-factor authentication enabled",
        identity=IdentityRead.model_validate(result),
    )


@router.post("/totp/disable", response_model=IdentityResponse)
async def totp_disable(
    data: TotpDisableRequest,
    auth: CsrfProtectedAuth,
    totp_service: TotpServiceDep,
) -> IdentityResponse:
    result = await totp_service.disable(auth, data.code)
    if isinstance(result, Failure):
        raise DomainError(result)
    return IdentityResponse(
        message="Two-factor authentication disabled",
        identity=IdentityRead.model_validate(result),
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Unknown invitation token"},
        409: {"description": "Invitation already accepted or email already registered"},
        410: {"description": "Invitation expired"},
    },
)
@limiter.limit("5/hour")
async def register(
    request: Request,
    data: RegisterRequest,
    ctx: RequestCtx,
    invitation_service: InvitationServiceDep,
) -> RegisterResponse:
    """Create an identity from an invitation token.

    The identity gets the role the invitation was issued for. Each token
    registers at most one identity.
    """
    result = await invitation_service.consume(
        ctx, data.token, data.first_name, data.last_name, data.password
    )
    if isinstance(result, Failure):
        raise DomainError(result)
    return RegisterResponse(
        message="Registration complete",
        identity=IdentityRead.model_validate(result),
    )
