"""Health check and metrics endpoints."""

import secrets
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.identity.core.config import get_settings
from src.identity.core.db import get_session
from src.identity.core.logging import get_logger

logger = get_logger(__name__)

# Health check caching
_health_cache: dict[str, Any] | None = None
_health_cache_time: float = 0
HEALTH_CACHE_TTL = 10  # seconds


def reset_health_cache() -> None:
    """Reset health cache (for testing)."""
    global _health_cache, _health_cache_time
    _health_cache = None
    _health_cache_time = 0


def setup_health_endpoint(app: FastAPI) -> None:
    """Configure the health check endpoint.

    The store is the only dependency: without it no authentication decision
    can be made, so an unreachable database reports 503.
    """

    @app.get("/health", include_in_schema=False)
    async def health() -> JSONResponse:
        global _health_cache, _health_cache_time

        now = time.time()

        if _health_cache and (now - _health_cache_time) < HEALTH_CACHE_TTL:
            cached_response = _health_cache.copy()
            cached_response["cached"] = True
            cached_response["cache_age_seconds"] = round(now - _health_cache_time, 1)
            status_code = 200 if cached_response["status"] == "healthy" else 503
            return JSONResponse(content=cached_response, status_code=status_code)

        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": "unknown",
            "cached": False,
            "timestamp": now,
        }

        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
            health_status["database"] = "healthy"
        except (SQLAlchemyError, OSError) as e:
            logger.error("Health check failed", error_type=type(e).__name__)
            health_status["database"] = "unhealthy"
            health_status["status"] = "unhealthy"

        _health_cache = health_status
        _health_cache_time = now

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)


def setup_metrics(app: FastAPI) -> None:
    """Expose Prometheus metrics, protected by an API key when configured."""
    settings = get_settings()
    instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics"]).instrument(app)

    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or missing metrics API key",
                )

        instrumentator.expose(
            app,
            endpoint="/metrics",
            include_in_schema=False,
            dependencies=[Depends(verify_metrics_key)],
        )
    else:
        instrumentator.expose(app, endpoint="/metrics", include_in_schema=False)
