"""Tests for the role hierarchy and permission matrix."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.identity.core.results import ErrorCode
from src.identity.models import Permission, Role
from src.identity.services import permission_model
from src.identity.services.permission_model import (
    ELEVATED_ALUMNI_PERMISSIONS,
    PERMISSION_MATRIX,
    Wildcard,
)
from tests.factories import IdentityFactory

pytestmark = pytest.mark.unit

roles = st.sampled_from(list(Role))
permissions = st.sampled_from(list(Permission))
wildcard_roles = st.sampled_from([r for r in Role if PERMISSION_MATRIX[r] is Wildcard.ALL])
explicit_roles = st.sampled_from([r for r in Role if PERMISSION_MATRIX[r] is not Wildcard.ALL])


def test_roles_are_totally_ordered_by_declaration():
    ranks = [role.rank for role in Role]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ranks)
    assert Role.NONE.rank < Role.ALUMNI.rank < Role.MEMBER.rank < Role.DEPARTMENT_LEAD.rank
    assert Role.BOARD.rank < Role.ADMIN.rank


def test_every_role_has_a_matrix_entry():
    assert set(PERMISSION_MATRIX) == set(Role)


@given(role=wildcard_roles, permission=permissions)
def test_wildcard_roles_grant_everything(role: Role, permission: Permission):
    assert permission_model.check(role, permission)


@given(role=explicit_roles, permission=permissions)
def test_explicit_roles_grant_only_listed_permissions(role: Role, permission: Permission):
    grant = PERMISSION_MATRIX[role]
    assert permission_model.check(role, permission) == (permission in grant)


def test_board_edits_inventory_member_does_not():
    assert permission_model.check(Role.BOARD, Permission.EDIT_INVENTORY)
    assert not permission_model.check(Role.MEMBER, Permission.EDIT_INVENTORY)


def test_none_role_has_no_permissions():
    assert not any(permission_model.check(Role.NONE, p) for p in Permission)


@given(actor=roles, target=roles)
def test_can_manage_is_strict(actor: Role, target: Role):
    assert permission_model.can_manage(actor, target) == (actor.rank > target.rank)
    if actor == target:
        assert not permission_model.can_manage(actor, target)


@given(actor=roles, role=roles)
def test_can_grant_allows_own_rank(actor: Role, role: Role):
    assert permission_model.can_grant(actor, role) == (actor.rank >= role.rank)


def test_validators_are_board_tier_and_above():
    assert not permission_model.is_validator(Role.DEPARTMENT_LEAD)
    assert permission_model.is_validator(Role.ALUMNI_BOARD)
    assert permission_model.is_validator(Role.ADMIN)


@pytest.mark.parametrize("value", ["superuser", "ADMIN", "", "board "])
def test_unknown_role_rejected(value: str):
    with pytest.raises(ValueError):
        permission_model.parse_role(value)


class TestAuthorize:
    """authorize() adds the alumni validation flag on top of check()."""

    @pytest.mark.parametrize("permission", sorted(ELEVATED_ALUMNI_PERMISSIONS))
    def test_unvalidated_alumni_denied_elevated(self, permission: Permission):
        identity = IdentityFactory.alumni(validated=False)

        # A naive role check would pass
        assert permission_model.check(Role.ALUMNI, permission)
        failure = permission_model.authorize(identity, permission)

        assert failure is not None
        assert failure.code is ErrorCode.ALUMNI_NOT_VALIDATED

    @pytest.mark.parametrize("permission", sorted(ELEVATED_ALUMNI_PERMISSIONS))
    def test_validated_alumni_allowed_elevated(self, permission: Permission):
        identity = IdentityFactory.alumni(validated=True)
        assert permission_model.authorize(identity, permission) is None

    def test_unvalidated_alumni_keeps_base_permissions(self):
        identity = IdentityFactory.alumni(validated=False)
        assert permission_model.authorize(identity, Permission.VIEW_INVENTORY) is None

    def test_missing_permission_is_permission_denied(self):
        identity = IdentityFactory.with_role(Role.MEMBER)
        failure = permission_model.authorize(identity, Permission.MANAGE_USERS)
        assert failure is not None
        assert failure.code is ErrorCode.PERMISSION_DENIED

    @given(permission=permissions)
    def test_admin_authorized_for_everything(self, permission: Permission):
        identity = IdentityFactory.with_role(Role.ADMIN)
        assert permission_model.authorize(identity, permission) is None
