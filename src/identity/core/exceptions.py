"""Exception types and handlers rendering the response envelope.

Every error response has the shape
``{"success": false, "message": ..., "error": ..., "request_id": ...}``.
"""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.identity.core.logging import get_logger
from src.identity.core.results import ErrorCode, Failure

logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.TOTP_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOTP_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOTP_ALREADY_ENABLED: status.HTTP_409_CONFLICT,
    ErrorCode.TOTP_NOT_ENABLED: status.HTTP_409_CONFLICT,
    ErrorCode.CSRF_MISMATCH: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.SESSION_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVITATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVITATION_EXPIRED: status.HTTP_410_GONE,
    ErrorCode.INVITATION_ALREADY_ACCEPTED: status.HTTP_409_CONFLICT,
    ErrorCode.INVITATION_PENDING: status.HTTP_409_CONFLICT,
    ErrorCode.EMAIL_ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorCode.IDENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ALUMNI_NOT_VALIDATED: status.HTTP_403_FORBIDDEN,
    ErrorCode.VALIDATION_ERROR: 422,
}


class StoreUnavailable(Exception):
    """The persistent store cannot be reached. The only fatal condition."""


class DomainError(Exception):
    """Raised by route handlers to render a :class:`Failure`."""

    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure


def failure_response(failure: Failure, extra: dict[str, object] | None = None) -> JSONResponse:
    content: dict[str, object] = {
        **(extra or {}),
        "success": False,
        "message": failure.message,
        "error": failure.code.value,
        "request_id": correlation_id.get(),
    }
    headers = None
    if failure.retry_after is not None:
        content["retry_after"] = failure.retry_after
        headers = {"Retry-After": str(failure.retry_after)}
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[failure.code],
        content=content,
        headers=headers,
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render an endpoint throttling hit like any other RATE_LIMITED failure."""
    # Length of the limit window; the caller is unblocked by then at the latest
    retry_after = int(exc.limit.limit.get_expiry())
    logger.warning("Endpoint limit exceeded", path=request.url.path, limit=str(exc.detail))
    return failure_response(Failure(ErrorCode.RATE_LIMITED, retry_after=retry_after))


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "request_id": correlation_id.get(),
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        return failure_response(exc.failure)

    app.add_exception_handler(
        RateLimitExceeded, rate_limit_exceeded_handler  # type: ignore[arg-type]
    )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error("Store unavailable", path=request.url.path, error=str(exc))
        return _envelope(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable")

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Database unavailable",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return _envelope(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Invalid request",
                "error": ErrorCode.VALIDATION_ERROR.value,
                "errors": errors,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=correlation_id.get(),
            path=request.url.path,
        )
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
