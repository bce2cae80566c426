"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.identity.api.dependencies.db import DBSession
from src.identity.repositories import (
    AttemptRecordRepository,
    IdentityRepository,
    InvitationRepository,
    SessionRepository,
    StoreLockRepository,
)


def get_identity_repository(session: DBSession) -> IdentityRepository:
    return IdentityRepository(session)


def get_session_repository(session: DBSession) -> SessionRepository:
    return SessionRepository(session)


def get_attempt_repository(session: DBSession) -> AttemptRecordRepository:
    return AttemptRecordRepository(session)


def get_invitation_repository(session: DBSession) -> InvitationRepository:
    return InvitationRepository(session)


def get_lock_repository(session: DBSession) -> StoreLockRepository:
    return StoreLockRepository(session)


IdentityRepo = Annotated[IdentityRepository, Depends(get_identity_repository)]
SessionRepo = Annotated[SessionRepository, Depends(get_session_repository)]
AttemptRepo = Annotated[AttemptRecordRepository, Depends(get_attempt_repository)]
InvitationRepo = Annotated[InvitationRepository, Depends(get_invitation_repository)]
LockRepo = Annotated[StoreLockRepository, Depends(get_lock_repository)]
