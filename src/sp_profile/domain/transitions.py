"""Moderation status state machine.

    DRAFT ──> MODERATING ──> PUBLISHED ──> BLOCKED
                   └──────────────────────────┘

BLOCKED is terminal for automated transitions. Pure functions, no I/O.
"""

from src.sp_common.enums import ProfileStatus
from src.sp_common.errors import InvalidTransitionError

ALLOWED_TRANSITIONS: frozenset[tuple[ProfileStatus, ProfileStatus]] = frozenset({
    (ProfileStatus.DRAFT, ProfileStatus.MODERATING),
    (ProfileStatus.MODERATING, ProfileStatus.PUBLISHED),
    (ProfileStatus.MODERATING, ProfileStatus.BLOCKED),
    (ProfileStatus.PUBLISHED, ProfileStatus.BLOCKED),
})


def is_allowed(from_status: ProfileStatus, to_status: ProfileStatus) -> bool:
    return (from_status, to_status) in ALLOWED_TRANSITIONS


def check_transition(from_status: ProfileStatus, to_status: ProfileStatus) -> None:
    """Raise InvalidTransitionError unless from_status -> to_status is allowed."""
    if not is_allowed(from_status, to_status):
        raise InvalidTransitionError(from_status.value, to_status.value)
