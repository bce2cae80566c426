"""Test data factories using polyfactory."""

from tests.factories.identity import (
    DEFAULT_TEST_PASSWORD,
    IdentityFactory,
    InvitationFactory,
)

__all__ = [
    "DEFAULT_TEST_PASSWORD",
    "IdentityFactory",
    "InvitationFactory",
]
