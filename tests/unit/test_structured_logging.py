"""Tests for structured logging context."""

from uuid import uuid4

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.identity.core.logging import (
    REDACTED,
    bind_identity_context,
    bind_request_context,
    clear_request_context,
    mask_email,
    redact_sensitive,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output to a capturing logger for the test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    bind_request_context("test-request-123")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_identity_context_omits_email_by_default(capturing_logger, settings_override):
    settings_override(log_user_emails=False)
    identity_id = uuid4()

    bind_identity_context(identity_id, "board", "ada@example.com")
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["identity_id"] == str(identity_id)
    assert kwargs["role"] == "board"
    assert "user_email" not in kwargs


def test_bind_identity_context_with_email_enabled(capturing_logger, settings_override):
    settings_override(log_user_emails=True)

    bind_identity_context(uuid4(), "member", "ada@example.com")
    structlog.get_logger().info("test message")

    assert capturing_logger.calls[0].kwargs["user_email"] == "ada@example.com"


def test_clear_request_context(capturing_logger):
    bind_request_context("req-1")
    clear_request_context()
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


class TestMaskEmail:
    def test_masked_by_default(self, settings_override):
        settings_override(log_user_emails=False)
        assert mask_email("jane.doe@example.com") == "j***@example.com"

    def test_malformed_email(self, settings_override):
        settings_override(log_user_emails=False)
        assert mask_email("not-an-email") == "***"

    def test_unmasked_when_enabled(self, settings_override):
        settings_override(log_user_emails=True)
        assert mask_email("jane.doe@example.com") == "jane.doe@example.com"


def test_bind_request_context_with_method_and_path(capturing_logger):
    bind_request_context("req-2", "POST", "/api/v1/auth/login")
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["http_method"] == "POST"
    assert kwargs["http_path"] == "/api/v1/auth/login"


class TestRedactSensitive:
    def test_credentials_are_replaced(self):
        event = {"event": "login", "password": "hunter2", "csrf_token": "abc", "email": "a"}

        result = redact_sensitive(None, "info", event)

        assert result["password"] == REDACTED
        assert result["csrf_token"] == REDACTED
        assert result["email"] == "a"
        assert result["event"] == "login"

    def test_bound_context_is_redacted_too(self):
        cap_logger = CapturingLogger()
        old_config = structlog.get_config()
        structlog.configure(
            processors=[structlog.contextvars.merge_contextvars, redact_sensitive],
            logger_factory=lambda *args, **kwargs: cap_logger,
            cache_logger_on_first_use=False,
        )
        try:
            structlog.get_logger().bind(token="secret-value").info("test message")
        finally:
            structlog.configure(**old_config)

        assert cap_logger.calls[0].kwargs["token"] == REDACTED
