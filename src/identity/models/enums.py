"""Shared enums for models."""

from enum import Enum


class Role(str, Enum):
    """Identity role, declared from lowest to highest rank.

    Declaration order IS the total order; use :attr:`rank` for comparisons,
    never ``<`` on the values (they compare as strings).
    """

    NONE = "none"
    ALUMNI = "alumni"
    MEMBER = "member"
    DEPARTMENT_LEAD = "department_lead"
    ALUMNI_BOARD = "alumni_board"
    THIRD_CHAIR = "third_chair"
    SECOND_CHAIR = "second_chair"
    FIRST_CHAIR = "first_chair"
    BOARD = "board"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]


ROLE_RANKS: dict[Role, int] = {role: index for index, role in enumerate(Role)}


class Permission(str, Enum):
    """Permission tags checked on privileged operations."""

    VIEW_INVENTORY = "view_inventory"
    EDIT_INVENTORY = "edit_inventory"
    EDIT_NEWS = "edit_news"
    EDIT_PROJECTS = "edit_projects"
    EDIT_EVENTS = "edit_events"
    APPLY_PROJECTS = "apply_projects"
    EDIT_OWN_PROFILE = "edit_own_profile"
    ACCESS_ALUMNI_DIRECTORY = "access_alumni_directory"
    MANAGE_INVITATIONS = "manage_invitations"
    MANAGE_USERS = "manage_users"
    VALIDATE_ALUMNI = "validate_alumni"


class AttemptOutcome(str, Enum):
    """Outcome of a single authentication attempt."""

    SUCCESS = "success"
    FAILURE = "failure"
    BLOCKED = "blocked"  # rejected by the rate limiter, never counted as a failure


class SessionState(str, Enum):
    """Login session state."""

    PENDING_TOTP = "pending_totp"
    AUTHENTICATED = "authenticated"


class InvitationStatus(str, Enum):
    """Derived invitation status (revoked invitations are deleted)."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
