"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.identity.core.config import Settings

from .logging_context import logging_context_middleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "setup_middlewares",
    "SecurityHeadersMiddleware",
    "logging_context_middleware",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    Middleware order matters - outermost middleware runs first.
    """
    # Logging context - binds request_id, method and path to structlog context
    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    # Security headers (Helmet-style)
    # Use stricter CSP in production when OpenAPI docs are disabled
    csp = None
    if not settings.enable_openapi and settings.csp_production:
        csp = settings.csp_production
    app.add_middleware(SecurityHeadersMiddleware, content_security_policy=csp)

    # CORS - credentials are cookies, so origins must be explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID", settings.csrf_header_name],
    )

    # Correlation ID - generates/propagates X-Request-ID (outermost)
    app.add_middleware(CorrelationIdMiddleware)
