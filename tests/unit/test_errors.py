"""Tests for sp_common.errors and sp_common.response."""

import pytest

from src.sp_common.enums import Outcome
from src.sp_common.errors import (
    AppError,
    CacheUnavailableError,
    DuplicateNameError,
    DuplicateSlugError,
    IntegrityViolationError,
    InternalError,
    InvalidTransitionError,
    OperationNotImplementedError,
    PoolExhaustedError,
    ProfileNotFoundError,
    ProfileValidationError,
    RateUnavailableError,
    StoreUnavailableError,
    UpdateConflictError,
    VersionConflictError,
)
from src.sp_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error_defaults_to_fatal(self) -> None:
        err = AppError(code=9006, message="Internal error")
        assert err.code == 9006
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert err.outcome is Outcome.FATAL

    def test_is_exception(self) -> None:
        err = AppError(code=1001, message="test")
        assert isinstance(err, Exception)
        assert str(err) == "test"


class TestErrorTable:
    @pytest.mark.parametrize(
        ("err", "code", "status", "outcome"),
        [
            (ProfileNotFoundError("s1"), 1001, 404, Outcome.NOT_FOUND),
            (DuplicateNameError("Acme", "default"), 1002, 409, Outcome.CONFLICT),
            (DuplicateSlugError("acme"), 1003, 409, Outcome.CONFLICT),
            (VersionConflictError("s1", 1), 1004, 409, Outcome.CONFLICT),
            (UpdateConflictError("s1", 3), 1005, 409, Outcome.CONFLICT),
            (InvalidTransitionError("DRAFT", "BLOCKED"), 1006, 422, Outcome.INVALID_TRANSITION),
            (ProfileValidationError("bad"), 1007, 400, Outcome.VALIDATION_ERROR),
            (RateUnavailableError("none"), 2001, 503, Outcome.UNAVAILABLE),
            (PoolExhaustedError(2.0), 9001, 503, Outcome.UNAVAILABLE),
            (StoreUnavailableError(), 9002, 503, Outcome.UNAVAILABLE),
            (CacheUnavailableError(), 9003, 503, Outcome.UNAVAILABLE),
            (OperationNotImplementedError("Nope"), 9004, 501, Outcome.NOT_IMPLEMENTED),
            (IntegrityViolationError("fk"), 9005, 500, Outcome.FATAL),
            (InternalError(), 9006, 500, Outcome.FATAL),
        ],
    )
    def test_code_status_outcome(self, err: AppError, code: int, status: int, outcome: Outcome) -> None:
        assert err.code == code
        assert err.http_status == status
        assert err.outcome is outcome

    def test_duplicate_name_mentions_namespace(self) -> None:
        err = DuplicateNameError("Acme", "shops")
        assert "Acme" in err.message
        assert "shops" in err.message

    def test_version_conflict_keeps_context(self) -> None:
        err = VersionConflictError("s1", 7)
        assert err.profile_id == "s1"
        assert err.expected_version == 7
        assert "7" in err.message

    def test_validation_error_keeps_detail(self) -> None:
        err = ProfileValidationError("slug is bad")
        assert err.detail == "slug is bad"
        assert "slug is bad" in err.message

    def test_pool_exhausted_mentions_timeout(self) -> None:
        assert "0.5s" in PoolExhaustedError(0.5).message


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": "s1"})
        assert resp.code == 0
        assert resp.outcome is Outcome.OK
        assert resp.message == "success"
        assert resp.data == {"id": "s1"}

    def test_error(self) -> None:
        resp = error_response(1001, "not found", Outcome.NOT_FOUND)
        assert resp.code == 1001
        assert resp.outcome is Outcome.NOT_FOUND
        assert resp.data is None

    def test_has_timestamp_and_request_id(self) -> None:
        resp = ApiResponse()
        assert resp.timestamp
        assert resp.request_id.startswith("req_")

    def test_serializes_outcome_as_wire_name(self) -> None:
        payload = error_response(9004, "nope", Outcome.NOT_IMPLEMENTED).model_dump(mode="json")
        assert payload["outcome"] == "NotImplemented"
