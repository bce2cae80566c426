"""Alumni status requests and validator decisions."""

import pytest

from src.identity.core.results import ErrorCode, Failure
from src.identity.models import Identity, Permission, Role
from src.identity.services import permission_model
from tests.factories import IdentityFactory
from tests.helpers import create_identity, login_as

pytestmark = pytest.mark.integration


@pytest.fixture
async def alumnus(db_session) -> Identity:
    identity = IdentityFactory.alumni(email="alumnus@example.com")
    db_session.add(identity)
    await db_session.commit()
    return identity


class TestRequestStatus:
    async def test_request_marks_pending(self, services, alumnus):
        auth, _, _ = await login_as(services, alumnus)

        result = await services.alumni.request_status(auth)

        assert result.alumni_status_requested_at is not None
        entries = await services.audit_repo.list_by_actor(alumnus.id)
        assert "alumni.request" in [e.action for e in entries]

    async def test_request_is_idempotent(self, services, alumnus):
        auth, _, _ = await login_as(services, alumnus)
        first = (await services.alumni.request_status(auth)).alumni_status_requested_at

        second = (await services.alumni.request_status(auth)).alumni_status_requested_at

        assert second == first
        entries = await services.audit_repo.list_by_actor(alumnus.id)
        assert [e.action for e in entries].count("alumni.request") == 1

    async def test_non_alumni_cannot_request(self, services, member):
        auth, _, _ = await login_as(services, member)

        result = await services.alumni.request_status(auth)

        assert result.code is ErrorCode.PERMISSION_DENIED


class TestValidate:
    async def test_request_approve_flow(self, services, alumnus, board):
        alumni_auth, _, _ = await login_as(services, alumnus)
        assert (
            permission_model.authorize(alumnus, Permission.EDIT_INVENTORY).code
            is ErrorCode.ALUMNI_NOT_VALIDATED
        )

        await services.alumni.request_status(alumni_auth)
        pending, _, _ = await services.alumni.list_pending()
        assert [i.id for i in pending] == [alumnus.id]

        board_auth, _, _ = await login_as(services, board)
        result = await services.alumni.validate(board_auth, alumnus.id, approve=True)

        assert not isinstance(result, Failure), result
        assert result.alumni_validated is True
        assert result.alumni_status_requested_at is None
        assert permission_model.authorize(result, Permission.EDIT_INVENTORY) is None
        pending, _, _ = await services.alumni.list_pending()
        assert pending == []

    async def test_reject_clears_request(self, services, alumnus, board):
        alumni_auth, _, _ = await login_as(services, alumnus)
        await services.alumni.request_status(alumni_auth)
        board_auth, _, _ = await login_as(services, board)

        result = await services.alumni.validate(board_auth, alumnus.id, approve=False)

        assert result.alumni_validated is False
        assert result.alumni_status_requested_at is None
        assert (await services.alumni.list_pending())[0] == []

    async def test_decision_logged_with_validator_as_actor(self, services, alumnus, board):
        board_auth, _, _ = await login_as(services, board)

        await services.alumni.validate(board_auth, alumnus.id, approve=True)

        entries = await services.audit_repo.list_for_target("identity", str(alumnus.id))
        approvals = [e for e in entries if e.action == "alumni.approve"]
        assert len(approvals) == 1
        assert approvals[0].actor_id == board.id

    async def test_alumni_board_is_a_validator(self, services, db_session, alumnus):
        validator = await create_identity(db_session, Role.ALUMNI_BOARD)
        auth, _, _ = await login_as(services, validator)

        result = await services.alumni.validate(auth, alumnus.id, approve=True)

        assert result.alumni_validated is True

    @pytest.mark.parametrize("role", [Role.MEMBER, Role.DEPARTMENT_LEAD])
    async def test_non_validator_denied(self, services, db_session, alumnus, role):
        actor = await create_identity(db_session, role)
        auth, _, _ = await login_as(services, actor)

        result = await services.alumni.validate(auth, alumnus.id, approve=True)

        assert result.code is ErrorCode.PERMISSION_DENIED
        entries = await services.audit_repo.list_by_actor(actor.id)
        assert "permission.denied" in [e.action for e in entries]

    async def test_target_must_be_alumni(self, services, board, member):
        auth, _, _ = await login_as(services, board)

        result = await services.alumni.validate(auth, member.id, approve=True)

        assert result.code is ErrorCode.VALIDATION_ERROR

    async def test_unknown_target(self, services, board):
        auth, _, _ = await login_as(services, board)

        result = await services.alumni.validate(auth, IdentityFactory.build().id, approve=True)

        assert result.code is ErrorCode.IDENTITY_NOT_FOUND

    async def test_validated_alumni_listed_nowhere(self, services, db_session):
        validated = IdentityFactory.alumni(validated=True)
        db_session.add(validated)
        await db_session.commit()
        auth, _, _ = await login_as(services, validated)

        await services.alumni.request_status(auth)

        assert (await services.alumni.list_pending())[0] == []
