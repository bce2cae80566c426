"""HTTP surface of login, sessions, TOTP and registration."""

import pytest
from httpx import AsyncClient

from src.identity.services import TotpService
from tests.factories import DEFAULT_TEST_PASSWORD
from tests.helpers import create_invitation

pytestmark = pytest.mark.integration

CSRF_HEADER = "X-CSRF-Token"


async def login(client: AsyncClient, email: str, password: str = DEFAULT_TEST_PASSWORD) -> str:
    """Log in and return the CSRF token. The session cookie stays in the client."""
    response = await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["csrf_token"]


class TestLogin:
    async def test_success_sets_cookies(self, client, member):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "member@example.com", "password": DEFAULT_TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["session_established"] is True
        assert data["requires_totp"] is False
        assert data["identity"]["email"] == "member@example.com"
        assert data["csrf_token"] == response.cookies["csrf_token"]

        set_cookies = response.headers.get_list("set-cookie")
        session_cookie = next(c for c in set_cookies if c.startswith("session="))
        csrf_cookie = next(c for c in set_cookies if c.startswith("csrf_token="))
        assert "HttpOnly" in session_cookie
        assert "samesite=strict" in session_cookie.lower()
        assert "HttpOnly" not in csrf_cookie

    async def test_wrong_password_and_unknown_email_look_the_same(self, client, member):
        wrong = await client.post(
            "/api/v1/auth/login", json={"email": "member@example.com", "password": "nope"}
        )
        unknown = await client.post(
            "/api/v1/auth/login", json={"email": "ghost@example.com", "password": "nope"}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"] == "Invalid email or password"
        assert wrong.json()["error"] == "invalid_credentials"
        assert "session" not in wrong.cookies

    async def test_sixth_attempt_is_rate_limited(self, client, member):
        for _ in range(5):
            await client.post(
                "/api/v1/auth/login", json={"email": "member@example.com", "password": "nope"}
            )

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "member@example.com", "password": DEFAULT_TEST_PASSWORD},
        )

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["retry_after"] == int(response.headers["Retry-After"])

    async def test_malformed_totp_code_is_validation_error(self, client, member):
        response = await client.post(
            "/api/v1/auth/login",
            json={
                "email": "member@example.com",
                "password": DEFAULT_TEST_PASSWORD,
                "totp_code": "12345a",
            },
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


class TestSession:
    async def test_me(self, client, member):
        await login(client, "member@example.com")

        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["identity"]["role"] == "member"

    async def test_me_without_session(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "not_authenticated"
        assert data["request_id"] == response.headers["X-Request-ID"]

    async def test_logout_without_csrf_keeps_session(self, client, member):
        await login(client, "member@example.com")

        rejected = await client.post("/api/v1/auth/logout")

        assert rejected.status_code == 403
        assert rejected.json()["error"] == "csrf_mismatch"
        assert (await client.get("/api/v1/auth/me")).status_code == 200

    async def test_logout_with_wrong_csrf_keeps_session(self, client, member):
        await login(client, "member@example.com")

        rejected = await client.post("/api/v1/auth/logout", headers={CSRF_HEADER: "x" * 43})

        assert rejected.status_code == 403
        assert (await client.get("/api/v1/auth/me")).status_code == 200

    async def test_logout(self, client, member):
        csrf = await login(client, "member@example.com")
        session_token = client.cookies["session"]

        response = await client.post("/api/v1/auth/logout", headers={CSRF_HEADER: csrf})

        assert response.status_code == 200
        client.cookies.set("session", session_token)
        assert (await client.get("/api/v1/auth/me")).status_code == 401

    async def test_responses_are_not_cached(self, client, member):
        await login(client, "member@example.com")

        response = await client.get("/api/v1/auth/me")

        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestTotp:
    async def _enable(self, client: AsyncClient) -> str:
        csrf = await login(client, "member@example.com")
        setup = await client.post("/api/v1/auth/totp/setup", headers={CSRF_HEADER: csrf})
        assert setup.status_code == 200, setup.text
        secret = setup.json()["secret"]
        assert setup.json()["provisioning_uri"].startswith("otpauth://totp/")

        enabled = await client.post(
            "/api/v1/auth/totp/enable",
            json={"secret": secret, "code": TotpService.code_at(secret)},
            headers={CSRF_HEADER: csrf},
        )
        assert enabled.status_code == 200, enabled.text
        assert enabled.json()["identity"]["totp_enabled"] is True
        client.cookies.clear()
        return secret

    async def test_login_requires_second_factor(self, client, member):
        secret = await self._enable(client)

        first = await client.post(
            "/api/v1/auth/login",
            json={"email": "member@example.com", "password": DEFAULT_TEST_PASSWORD},
        )

        assert first.status_code == 200
        assert first.json()["requires_totp"] is True
        assert first.json()["session_established"] is False
        assert "session" not in first.cookies

        second = await client.post(
            "/api/v1/auth/login/totp",
            json={
                "challenge_token": first.json()["challenge_token"],
                "code": TotpService.code_at(secret),
            },
        )

        assert second.status_code == 200, second.text
        assert second.json()["session_established"] is True
        assert (await client.get("/api/v1/auth/me")).status_code == 200

    async def test_wrong_code_keeps_challenge(self, client, member):
        secret = await self._enable(client)
        first = await client.post(
            "/api/v1/auth/login",
            json={"email": "member@example.com", "password": DEFAULT_TEST_PASSWORD},
        )
        challenge = first.json()["challenge_token"]
        wrong = next(
            f"{n:06d}"
            for n in range(1_000_000)
            if not TotpService.verify_code(secret, f"{n:06d}")
        )

        response = await client.post(
            "/api/v1/auth/login/totp", json={"challenge_token": challenge, "code": wrong}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "totp_invalid"
        assert response.json()["requires_totp"] is True
        assert response.json()["challenge_token"] == challenge

    async def test_code_on_first_request(self, client, member):
        secret = await self._enable(client)

        response = await client.post(
            "/api/v1/auth/login",
            json={
                "email": "member@example.com",
                "password": DEFAULT_TEST_PASSWORD,
                "totp_code": TotpService.code_at(secret),
            },
        )

        assert response.status_code == 200
        assert response.json()["session_established"] is True

    async def test_enable_with_undecodable_secret(self, client, member):
        csrf = await login(client, "member@example.com")

        response = await client.post(
            "/api/v1/auth/totp/enable",
            json={"secret": "A" * 17, "code": "123456"},
            headers={CSRF_HEADER: csrf},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        me = await client.get("/api/v1/auth/me")
        assert me.json()["identity"]["totp_enabled"] is False

    async def test_setup_requires_csrf(self, client, member):
        await login(client, "member@example.com")

        response = await client.post("/api/v1/auth/totp/setup")

        assert response.status_code == 403


class TestRegister:
    def _payload(self, token: str, **overrides) -> dict:
        return {
            "token": token,
            "first_name": "New",
            "last_name": "Person",
            "password": DEFAULT_TEST_PASSWORD,
            "password_confirm": DEFAULT_TEST_PASSWORD,
            **overrides,
        }

    async def test_register_with_invitation(self, client, db_session, board):
        _, token = await create_invitation(
            db_session, board, email="invitee@example.com", role="department_lead"
        )

        response = await client.post("/api/v1/auth/register", json=self._payload(token))

        assert response.status_code == 201, response.text
        identity = response.json()["identity"]
        assert identity["email"] == "invitee@example.com"
        assert identity["role"] == "department_lead"
        await login(client, "invitee@example.com")

    async def test_token_is_single_use(self, client, db_session, board):
        _, token = await create_invitation(db_session, board)
        await client.post("/api/v1/auth/register", json=self._payload(token))

        response = await client.post("/api/v1/auth/register", json=self._payload(token))

        assert response.status_code == 409
        assert response.json()["error"] == "invitation_already_accepted"

    async def test_unknown_token(self, client):
        response = await client.post("/api/v1/auth/register", json=self._payload("t" * 43))

        assert response.status_code == 404

    async def test_password_mismatch(self, client, db_session, board):
        _, token = await create_invitation(db_session, board)

        response = await client.post(
            "/api/v1/auth/register",
            json=self._payload(token, password_confirm="another-long-passphrase-99"),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    async def test_weak_password(self, client, db_session, board):
        _, token = await create_invitation(db_session, board)

        response = await client.post(
            "/api/v1/auth/register",
            json=self._payload(token, password="password1", password_confirm="password1"),
        )

        assert response.status_code == 422


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "healthy"
