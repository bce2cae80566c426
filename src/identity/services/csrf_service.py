"""Per-session anti-forgery tokens."""

from src.identity.core.security import generate_token, hash_token, tokens_match
from src.identity.models import AuthSession


class CsrfTokenService:
    """Issues and checks the CSRF token bound to a session.

    Only the token's hash is kept on the session row. A new session always
    gets a new token; tokens are never carried over.
    """

    @staticmethod
    def issue(session: AuthSession) -> str:
        token = generate_token()
        session.csrf_token_hash = hash_token(token)
        return token

    @staticmethod
    def verify(session: AuthSession, supplied_token: str | None) -> bool:
        return tokens_match(supplied_token, session.csrf_token_hash)
