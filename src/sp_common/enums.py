"""Global enums: must match DB CHECK constraints exactly.

Ref: alembic/versions/002_create_store_profiles.py
"""

from enum import Enum


class ProfileStatus(str, Enum):
    DRAFT = "DRAFT"
    MODERATING = "MODERATING"
    PUBLISHED = "PUBLISHED"
    BLOCKED = "BLOCKED"


class Operation(str, Enum):
    """Request-interface operations understood by the dispatcher."""
    GET_PROFILE = "GetProfile"
    GET_PROFILE_BY_USER = "GetProfileByUser"
    CREATE_PROFILE = "CreateProfile"
    UPDATE_PROFILE = "UpdateProfile"
    TRANSITION_STATUS = "TransitionStatus"
    QUOTE_PRICE = "QuotePrice"


class Outcome(str, Enum):
    """External response vocabulary returned at the router boundary."""
    OK = "Ok"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    INVALID_TRANSITION = "InvalidTransition"
    VALIDATION_ERROR = "ValidationError"
    UNAVAILABLE = "Unavailable"
    NOT_IMPLEMENTED = "NotImplemented"
    FATAL = "Fatal"


class RefresherState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"
