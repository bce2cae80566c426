"""Tests for failure results and their HTTP rendering."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from slowapi.errors import RateLimitExceeded

from src.identity.core.exceptions import (
    ERROR_STATUS_CODES,
    failure_response,
    setup_exception_handlers,
)
from src.identity.core.results import DEFAULT_MESSAGES, ErrorCode, Failure

pytestmark = pytest.mark.unit


def test_every_error_code_has_status_and_message():
    assert set(ERROR_STATUS_CODES) == set(ErrorCode)
    assert set(DEFAULT_MESSAGES) == set(ErrorCode)


def test_failure_gets_default_message():
    assert Failure(ErrorCode.INVALID_CREDENTIALS).message == "Invalid email or password"
    assert Failure(ErrorCode.PERMISSION_DENIED, "Nope").message == "Nope"


def test_invalid_credentials_message_does_not_leak_which_field():
    message = DEFAULT_MESSAGES[ErrorCode.INVALID_CREDENTIALS].lower()
    assert "email or password" in message


def test_failure_response_envelope():
    response = failure_response(Failure(ErrorCode.INVITATION_EXPIRED))
    body = json.loads(response.body)

    assert response.status_code == 410
    assert body["success"] is False
    assert body["error"] == "invitation_expired"
    assert body["message"] == "Invitation has expired"
    assert "retry_after" not in body


def test_rate_limited_response_carries_retry_after():
    response = failure_response(Failure(ErrorCode.RATE_LIMITED, retry_after=42))
    body = json.loads(response.body)

    assert response.status_code == 429
    assert body["retry_after"] == 42
    assert response.headers["Retry-After"] == "42"


def test_extra_fields_cannot_override_envelope():
    response = failure_response(
        Failure(ErrorCode.TOTP_INVALID), extra={"challenge_token": "abc", "success": True}
    )
    body = json.loads(response.body)

    assert body["challenge_token"] == "abc"
    assert body["success"] is False


async def test_endpoint_throttling_uses_the_envelope():
    limit = MagicMock(error_message=None)
    limit.limit.get_expiry.return_value = 60
    limit.limit.__str__.return_value = "10 per 1 minute"

    app = FastAPI()
    setup_exception_handlers(app)

    @app.post("/throttled")
    async def throttled() -> None:
        raise RateLimitExceeded(limit)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post("/throttled")

    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "rate_limited"
    assert body["retry_after"] == 60
    assert response.headers["Retry-After"] == "60"
    assert "request_id" in body
