from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.identity.api.middlewares import setup_middlewares
from src.identity.api.v1.router import api_router
from src.identity.core.config import get_settings
from src.identity.core.db import dispose_engine
from src.identity.core.exceptions import setup_exception_handlers
from src.identity.core.health import setup_health_endpoint, setup_metrics
from src.identity.core.logging import get_logger, setup_logging
from src.identity.core.rate_limit import limiter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}", env=settings.app_env)

    yield

    logger.info("Closing connections...")
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "auth", "description": "Login, sessions and two-factor authentication"},
    {"name": "invitations", "description": "Invitation-based registration"},
    {"name": "alumni", "description": "Alumni validation workflow"},
    {"name": "identities", "description": "Role administration"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Identity and access control: sessions, roles and invitations",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )

    setup_exception_handlers(app)

    app.state.limiter = limiter

    setup_middlewares(app, settings)

    app.include_router(api_router)

    setup_metrics(app)
    setup_health_endpoint(app)

    return app


app = create_app()
