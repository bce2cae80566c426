"""Role hierarchy and permission matrix.

Roles are totally ordered (see :class:`Role`). Each role maps either to an
explicit set of permissions or to the wildcard, which grants everything.
"""

from enum import Enum
from typing import Final, Literal

from src.identity.core.results import ErrorCode, Failure
from src.identity.models import Identity, Permission, Role


class Wildcard(Enum):
    ALL = "*"


type Grant = frozenset[Permission] | Literal[Wildcard.ALL]

_MEMBER_BASE: Final = frozenset({Permission.VIEW_INVENTORY, Permission.EDIT_OWN_PROFILE})

PERMISSION_MATRIX: Final[dict[Role, Grant]] = {
    Role.NONE: frozenset(),
    Role.ALUMNI: _MEMBER_BASE
    | {Permission.EDIT_INVENTORY, Permission.ACCESS_ALUMNI_DIRECTORY},
    Role.MEMBER: _MEMBER_BASE | {Permission.APPLY_PROJECTS},
    Role.DEPARTMENT_LEAD: _MEMBER_BASE
    | {
        Permission.EDIT_NEWS,
        Permission.EDIT_PROJECTS,
        Permission.EDIT_EVENTS,
        Permission.APPLY_PROJECTS,
        Permission.EDIT_INVENTORY,
    },
    Role.ALUMNI_BOARD: Wildcard.ALL,
    Role.THIRD_CHAIR: Wildcard.ALL,
    Role.SECOND_CHAIR: Wildcard.ALL,
    Role.FIRST_CHAIR: Wildcard.ALL,
    Role.BOARD: Wildcard.ALL,
    Role.ADMIN: Wildcard.ALL,
}

# Alumni may hold these only after validation
ELEVATED_ALUMNI_PERMISSIONS: Final = frozenset(
    {Permission.EDIT_INVENTORY, Permission.ACCESS_ALUMNI_DIRECTORY}
)

# Board tier and above decide on alumni requests
VALIDATOR_ROLES: Final = frozenset(role for role in Role if role.rank >= Role.ALUMNI_BOARD.rank)


def parse_role(value: str) -> Role:
    """Parse a stored or submitted role. Raises ValueError for unknown values."""
    return Role(value)


def is_wildcard(role: Role) -> bool:
    return PERMISSION_MATRIX[role] is Wildcard.ALL


def is_validator(role: Role) -> bool:
    return role in VALIDATOR_ROLES


def check(role: Role, permission: Permission) -> bool:
    """Whether ``role`` carries ``permission`` (ignores alumni validation)."""
    grant = PERMISSION_MATRIX[role]
    if grant is Wildcard.ALL:
        return True
    return permission in grant


def authorize(identity: Identity, permission: Permission) -> Failure | None:
    """Full check for an identity, including the alumni validation flag.

    Returns:
        None when permitted, otherwise the Failure to report.
    """
    role = parse_role(identity.role)
    if not check(role, permission):
        return Failure(ErrorCode.PERMISSION_DENIED)
    if (
        role is Role.ALUMNI
        and permission in ELEVATED_ALUMNI_PERMISSIONS
        and not identity.alumni_validated
    ):
        return Failure(ErrorCode.ALUMNI_NOT_VALIDATED)
    return None


def can_manage(actor: Role, target: Role) -> bool:
    """Strict rank rule: nobody manages a peer or a higher rank."""
    return actor.rank > target.rank


def can_grant(actor: Role, role: Role) -> bool:
    """Invitations may grant up to the creator's own rank."""
    return actor.rank >= role.rank
