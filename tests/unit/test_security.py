"""Tests for tokens, password hashing, CSRF tokens and input helpers."""

import pytest

from src.identity.core.security import (
    DUMMY_PASSWORD_HASH,
    generate_token,
    hash_password,
    hash_token,
    is_valid_totp_code,
    normalize_email,
    tokens_match,
    verify_password,
)
from src.identity.models import AuthSession
from src.identity.services import CsrfTokenService

pytestmark = pytest.mark.unit


class TestTokens:
    def test_tokens_are_unique_and_long(self):
        tokens = {generate_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(len(t) >= 43 for t in tokens)

    def test_hash_is_sha256_hex(self):
        digest = hash_token("abc")
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_tokens_match(self):
        token = generate_token()
        assert tokens_match(token, hash_token(token))
        assert not tokens_match(generate_token(), hash_token(token))

    @pytest.mark.parametrize("token,stored", [(None, "x"), ("", "x"), ("abc", None)])
    def test_tokens_match_rejects_missing(self, token, stored):
        assert not tokens_match(token, stored)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-passphrase")
        assert hashed.startswith("$argon2id$")
        assert verify_password("s3cret-passphrase", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_invalid_hash_returns_false(self):
        assert not verify_password("anything", "not-a-hash")

    def test_dummy_hash_is_verifiable(self):
        assert DUMMY_PASSWORD_HASH.startswith("$argon2")
        assert not verify_password("anything", DUMMY_PASSWORD_HASH)


class TestCsrfTokenService:
    def test_issue_stores_only_hash(self):
        session = AuthSession(token_hash="x" * 64, identity_id=None)  # type: ignore[arg-type]
        token = CsrfTokenService.issue(session)

        assert session.csrf_token_hash == hash_token(token)
        assert token not in (session.csrf_token_hash or "")

    def test_verify(self):
        session = AuthSession(token_hash="x" * 64, identity_id=None)  # type: ignore[arg-type]
        token = CsrfTokenService.issue(session)

        assert CsrfTokenService.verify(session, token)
        assert not CsrfTokenService.verify(session, None)
        assert not CsrfTokenService.verify(session, "")
        assert not CsrfTokenService.verify(session, generate_token())

    def test_reissue_rotates_token(self):
        session = AuthSession(token_hash="x" * 64, identity_id=None)  # type: ignore[arg-type]
        first = CsrfTokenService.issue(session)
        second = CsrfTokenService.issue(session)

        assert first != second
        assert not CsrfTokenService.verify(session, first)
        assert CsrfTokenService.verify(session, second)

    def test_session_without_token_rejects_everything(self):
        session = AuthSession(token_hash="x" * 64, identity_id=None)  # type: ignore[arg-type]
        assert not CsrfTokenService.verify(session, generate_token())


class TestValidators:
    def test_normalize_email(self):
        assert normalize_email("  Ada.Lovelace@Example.COM ") == "ada.lovelace@example.com"

    @pytest.mark.parametrize("code", ["000000", "123456", "999999"])
    def test_valid_totp_codes(self, code: str):
        assert is_valid_totp_code(code)

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "abcdef", "12 456", "١٢٣٤٥٦"])
    def test_invalid_totp_codes(self, code: str):
        assert not is_valid_totp_code(code)
