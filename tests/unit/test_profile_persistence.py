# tests/unit/test_profile_persistence.py
"""Unit tests for StoreProfileRepository using a MagicMock connection."""
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from src.sp_common.enums import ProfileStatus
from src.sp_common.errors import (
    DuplicateNameError,
    DuplicateSlugError,
    IntegrityViolationError,
    InternalError,
    ProfileNotFoundError,
    StoreUnavailableError,
    VersionConflictError,
)
from src.sp_profile.domain.models import NewStoreProfile, ProfilePatch
from src.sp_profile.infrastructure.persistence import (
    UQ_NAMESPACE_NAME,
    UQ_SLUG,
    StoreProfileRepository,
)


class _UniqueViolation(Exception):
    def __init__(self, constraint_name: str) -> None:
        super().__init__(f'duplicate key value violates unique constraint "{constraint_name}"')
        self.constraint_name = constraint_name


class _FakePool:
    def __init__(self, conn: MagicMock) -> None:
        self.conn = conn

    @asynccontextmanager
    async def connection(self):
        yield self.conn


def _make_row(**kwargs):
    """Build a mock DB row with all required fields."""
    row = MagicMock()
    row.id = kwargs.get("id", "store-1")
    row.user_id = kwargs.get("user_id", 42)
    row.namespace = kwargs.get("namespace", "default")
    row.display_name = kwargs.get("display_name", "Acme")
    row.slug = kwargs.get("slug", "acme")
    row.locale = kwargs.get("locale", "en")
    row.currency = kwargs.get("currency", "USD")
    row.status = kwargs.get("status", "DRAFT")
    row.short_description = kwargs.get("short_description", '{"en": "Tools"}')
    row.country = kwargs.get("country")
    row.version = kwargs.get("version", 1)
    row.created_at = datetime.now(UTC)
    row.updated_at = datetime.now(UTC)
    return row


def _result(row):
    result = MagicMock()
    result.fetchone.return_value = row
    return result


def _draft() -> NewStoreProfile:
    return NewStoreProfile(
        id="store-1",
        user_id=42,
        namespace="default",
        display_name="Acme",
        slug="acme",
        locale="en",
        currency="USD",
        short_description={"en": "Tools"},
    )


@pytest.fixture
def conn():
    return MagicMock()


@pytest.fixture
def repo(conn):
    return StoreProfileRepository(_FakePool(conn))  # type: ignore[arg-type]


class TestGet:
    async def test_returns_profile_when_found(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(_make_row(status="PUBLISHED")))

        profile = await repo.get("store-1")

        assert profile is not None
        assert profile.id == "store-1"
        assert profile.status is ProfileStatus.PUBLISHED
        assert profile.short_description == {"en": "Tools"}

    async def test_returns_none_when_not_found(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(None))

        assert await repo.get("missing") is None

    async def test_accepts_already_decoded_json(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(_make_row(short_description={"de": "Werkzeug"})))

        profile = await repo.get("store-1")

        assert profile.short_description == {"de": "Werkzeug"}


class TestGetByUser:
    async def test_queries_by_owner(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(_make_row(user_id=42)))

        profile = await repo.get_by_user(42)

        assert profile is not None
        assert profile.user_id == 42
        sql, params = conn.execute.call_args[0]
        assert "WHERE user_id = :user_id" in str(sql)
        assert params == {"user_id": 42}

    async def test_returns_none_without_store(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(None))

        assert await repo.get_by_user(43) is None


class TestCreate:
    async def test_inserts_version_one(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(_make_row(version=1)))

        profile = await repo.create(_draft())

        assert profile.version == 1
        params = conn.execute.call_args[0][1]
        assert params["status"] == "DRAFT"
        assert params["short_description"] == '{"en": "Tools"}'

    async def test_duplicate_name_maps_to_conflict(self, conn, repo) -> None:
        conn.execute = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, _UniqueViolation(UQ_NAMESPACE_NAME))
        )

        with pytest.raises(DuplicateNameError):
            await repo.create(_draft())

    async def test_duplicate_slug_maps_to_conflict(self, conn, repo) -> None:
        conn.execute = AsyncMock(side_effect=IntegrityError("INSERT", {}, _UniqueViolation(UQ_SLUG)))

        with pytest.raises(DuplicateSlugError):
            await repo.create(_draft())

    async def test_other_integrity_error_is_fatal(self, conn, repo) -> None:
        conn.execute = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, _UniqueViolation("ck_store_profiles_status"))
        )

        with pytest.raises(IntegrityViolationError):
            await repo.create(_draft())


class TestUpdate:
    async def test_returns_bumped_version(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(_make_row(version=2, display_name="Acme 2")))

        profile = await repo.update("store-1", 1, ProfilePatch(display_name="Acme 2"))

        assert profile.version == 2
        params = conn.execute.call_args[0][1]
        assert params["expected_version"] == 1
        assert params["slug"] is None
        assert params["status"] is None

    async def test_status_written_as_value(self, conn, repo) -> None:
        conn.execute = AsyncMock(return_value=_result(_make_row(status="MODERATING", version=2)))

        await repo.update("store-1", 1, ProfilePatch(status=ProfileStatus.MODERATING))

        assert conn.execute.call_args[0][1]["status"] == "MODERATING"

    async def test_stale_version_is_version_conflict(self, conn, repo) -> None:
        current = MagicMock()
        current.fetchone.return_value = (3,)
        conn.execute = AsyncMock(side_effect=[_result(None), current])

        with pytest.raises(VersionConflictError) as exc_info:
            await repo.update("store-1", 1, ProfilePatch(display_name="Other"))

        assert exc_info.value.expected_version == 1

    async def test_missing_row_is_not_found(self, conn, repo) -> None:
        conn.execute = AsyncMock(side_effect=[_result(None), _result(None)])

        with pytest.raises(ProfileNotFoundError):
            await repo.update("store-x", 1, ProfilePatch(display_name="Other"))

    async def test_slug_collision_on_update(self, conn, repo) -> None:
        conn.execute = AsyncMock(side_effect=IntegrityError("UPDATE", {}, _UniqueViolation(UQ_SLUG)))

        with pytest.raises(DuplicateSlugError):
            await repo.update("store-1", 1, ProfilePatch(slug="taken"))


class TestDriverErrors:
    async def test_operational_error_is_store_unavailable(self, conn, repo) -> None:
        conn.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("reset")))

        with pytest.raises(StoreUnavailableError):
            await repo.get("store-1")

    async def test_os_error_is_store_unavailable(self, conn, repo) -> None:
        conn.execute = AsyncMock(side_effect=ConnectionResetError("peer reset"))

        with pytest.raises(StoreUnavailableError):
            await repo.get("store-1")

    async def test_programming_error_is_internal(self, conn, repo) -> None:
        conn.execute = AsyncMock(side_effect=ProgrammingError("SELECT", {}, Exception("syntax")))

        with pytest.raises(InternalError):
            await repo.get("store-1")
