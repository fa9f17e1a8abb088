"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Store profile
  2xxx: Rates / pricing
  9xxx: System (pool, database, cache, dispatch)

Every error carries the caller-facing outcome it maps to at the router
boundary (see src/sp_common/enums.py::Outcome).
"""

from src.sp_common.enums import Outcome


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        outcome: Outcome = Outcome.FATAL,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.outcome = outcome
        super().__init__(message)


# --- 1xxx: Store profile ---

class ProfileNotFoundError(AppError):
    def __init__(self, profile_id: str) -> None:
        super().__init__(1001, f"Store profile not found: {profile_id}", 404, Outcome.NOT_FOUND)


class DuplicateNameError(AppError):
    def __init__(self, display_name: str, namespace: str | None = None) -> None:
        scope = f" in namespace {namespace}" if namespace else ""
        super().__init__(
            1002,
            f"Display name already taken{scope}: {display_name}",
            409,
            Outcome.CONFLICT,
        )


class DuplicateSlugError(AppError):
    def __init__(self, slug: str) -> None:
        super().__init__(1003, f"Slug already taken: {slug}", 409, Outcome.CONFLICT)


class VersionConflictError(AppError):
    """Stored version no longer matches the version the write was based on."""

    def __init__(self, profile_id: str, expected_version: int) -> None:
        self.profile_id = profile_id
        self.expected_version = expected_version
        super().__init__(
            1004,
            f"Version conflict on {profile_id}: expected version {expected_version}",
            409,
            Outcome.CONFLICT,
        )


class UpdateConflictError(AppError):
    """Optimistic update still conflicting after the retry budget is spent."""

    def __init__(self, profile_id: str, attempts: int) -> None:
        super().__init__(
            1005,
            f"Concurrent modification of {profile_id}: gave up after {attempts} attempts",
            409,
            Outcome.CONFLICT,
        )


class InvalidTransitionError(AppError):
    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(
            1006,
            f"Invalid status transition: {from_status} -> {to_status}",
            422,
            Outcome.INVALID_TRANSITION,
        )


class ProfileValidationError(AppError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(1007, f"Validation failed: {detail}", 400, Outcome.VALIDATION_ERROR)


# --- 2xxx: Rates ---

class RateUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2001, f"Exchange rate unavailable: {detail}", 503, Outcome.UNAVAILABLE)


# --- 9xxx: System ---

class PoolExhaustedError(AppError):
    def __init__(self, timeout: float) -> None:
        super().__init__(
            9001,
            f"No database connection available within {timeout:g}s",
            503,
            Outcome.UNAVAILABLE,
        )


class StoreUnavailableError(AppError):
    def __init__(self, detail: str = "System of record unavailable") -> None:
        super().__init__(9002, detail, 503, Outcome.UNAVAILABLE)


class CacheUnavailableError(AppError):
    def __init__(self, detail: str = "Cache backend unavailable") -> None:
        super().__init__(9003, detail, 503, Outcome.UNAVAILABLE)


class OperationNotImplementedError(AppError):
    def __init__(self, operation: str) -> None:
        super().__init__(9004, f"Operation not implemented: {operation}", 501, Outcome.NOT_IMPLEMENTED)


class IntegrityViolationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9005, f"Integrity violation: {detail}", 500, Outcome.FATAL)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9006, detail, 500, Outcome.FATAL)
