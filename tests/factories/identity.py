"""Identity and invitation factories for test data generation."""

from datetime import timedelta

from polyfactory import Use

from src.identity.core.security import generate_token, hash_password, hash_token
from src.identity.models import Identity, Invitation, Role
from tests.factories.base import BaseFactory, generate_uuid, utc_now

# Strong enough for zxcvbn, so the same password works through the API
DEFAULT_TEST_PASSWORD = "correct-horse-battery-staple-42"

_DEFAULT_HASH = hash_password(DEFAULT_TEST_PASSWORD)


class IdentityFactory(BaseFactory):
    """Factory for generating Identity test data."""

    __model__ = Identity

    id = Use(generate_uuid)
    email = Use(lambda: f"user_{generate_uuid().hex[-8:]}@example.com")
    hashed_password = _DEFAULT_HASH
    first_name = "Test"
    last_name = "User"
    role = Role.MEMBER.value
    totp_secret = None
    totp_enabled = False
    totp_verified_at = None
    alumni_validated = False
    alumni_status_requested_at = None
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def with_role(cls, role: Role, **kwargs):
        return cls.build(role=role.value, **kwargs)

    @classmethod
    def alumni(cls, validated: bool = False, **kwargs):
        return cls.build(role=Role.ALUMNI.value, alumni_validated=validated, **kwargs)


class InvitationFactory(BaseFactory):
    """Factory for generating Invitation test data.

    The plaintext token is not stored; use :meth:`with_token` to get it.
    """

    __model__ = Invitation

    id = Use(generate_uuid)
    email = Use(lambda: f"invitee_{generate_uuid().hex[-8:]}@example.com")
    token_hash = Use(lambda: hash_token(generate_token()))
    role = Role.MEMBER.value
    created_by_id = None  # FK - must be set explicitly
    created_at = Use(utc_now)
    expires_at = Use(lambda: utc_now() + timedelta(days=7))
    accepted_at = None
    accepted_by_id = None

    @classmethod
    def with_token(cls, **kwargs) -> tuple[Invitation, str]:
        token = generate_token()
        return cls.build(token_hash=hash_token(token), **kwargs), token
