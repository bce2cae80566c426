"""Root test fixtures shared across all test types.

Environment variables must be set before any application import: settings,
the password hasher and the endpoint limiter are built at import time.
"""

import os
import tempfile

# Disables endpoint throttling (slowapi)
os.environ.setdefault("APP_ENV", "testing")
# Module-level engine (health check, scripts); integration tests use their own
os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mkdtemp()}/identity-test.db"
)
os.environ.setdefault("DATABASE_SSL_MODE", "disable")
# Cheap argon2 parameters keep the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "8")
# httpx does not send Secure cookies over http://
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")

# ruff: noqa: E402 - Imports must be after env var setup
import pytest

from src.identity.core.config import get_settings

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def settings_override(monkeypatch: pytest.MonkeyPatch):
    """Override settings fields for one test.

    Usage::

        def test_x(settings_override):
            settings_override(log_user_emails=True)
    """
    settings = get_settings()

    def _override(**values: object) -> None:
        for name, value in values.items():
            monkeypatch.setattr(settings, name, value)

    return _override
