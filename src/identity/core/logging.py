"""Logging configuration using structlog."""

import logging
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


# Event keys that may carry credentials; their values never reach the log output
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "hashed_password",
        "token",
        "session_token",
        "csrf_token",
        "challenge_token",
        "totp_code",
        "totp_secret",
        "secret",
    }
)
REDACTED = "[redacted]"


def redact_sensitive(
    logger: object, method_name: str, event_dict: structlog.typing.EventDict
) -> structlog.typing.EventDict:
    """structlog processor replacing credential values with a placeholder."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging(debug: bool = False) -> None:
    """Configure structlog for structured logging.

    Args:
        debug: If True, use colored console output. If False, use JSON for production.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_sensitive,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def mask_email(email: str) -> str:
    """Mask an email address for logs unless LOG_USER_EMAILS is enabled.

    ``jane.doe@example.com`` becomes ``j***@example.com``.
    """
    from src.identity.core.config import get_settings

    if get_settings().log_user_emails:
        return email
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


def bind_request_context(
    request_id: str | None, method: str | None = None, path: str | None = None
) -> None:
    """Bind request-level context to all subsequent log calls.

    Args:
        request_id: The correlation ID for the current request.
        method: HTTP method, if known.
        path: Request path (never the query string, which may carry tokens).
    """
    if request_id:
        bind_contextvars(request_id=request_id)
    if method and path:
        bind_contextvars(http_method=method, http_path=path)


def bind_identity_context(identity_id: UUID, role: str, email: str | None = None) -> None:
    """Bind the authenticated identity to all subsequent log calls.

    Args:
        identity_id: The authenticated identity's ID.
        role: The identity's role at the time of the request.
        email: Optional email, only logged if settings.log_user_emails is True.
    """
    from src.identity.core.config import get_settings

    bind_contextvars(identity_id=str(identity_id), role=role)
    if email and get_settings().log_user_emails:
        bind_contextvars(user_email=email)


def clear_request_context() -> None:
    """Clear all request-scoped context."""
    clear_contextvars()
