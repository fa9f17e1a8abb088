"""StoreProfileRepository: concrete implementation of StoreProfileRepositoryProtocol.

All queries use raw text() SQL (no ORM). Each public method is one unit of
work: one pooled connection, one transaction.

Optimistic concurrency: update() is a single conditional
UPDATE ... WHERE version = :expected_version. Zero rows means either the
row is gone or someone else committed first; a follow-up SELECT in the
same transaction tells the two apart. Nothing is retried here.

asyncpg NULL parameter pattern: CAST(:param AS TYPE) is required for None values.
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection

from src.sp_common.connection_pool import ConnectionPool
from src.sp_common.enums import ProfileStatus
from src.sp_common.errors import (
    AppError,
    DuplicateNameError,
    DuplicateSlugError,
    IntegrityViolationError,
    InternalError,
    ProfileNotFoundError,
    StoreUnavailableError,
    VersionConflictError,
)
from src.sp_profile.domain.models import NewStoreProfile, ProfilePatch, StoreProfile

UQ_NAMESPACE_NAME = "uq_store_profiles_namespace_name"
UQ_SLUG = "uq_store_profiles_slug"

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, user_id, namespace, display_name, slug, locale, currency, status,
    short_description::text AS short_description, country, version,
    created_at, updated_at
"""

_GET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM store_profiles
    WHERE id = :id
""")

_GET_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM store_profiles
    WHERE user_id = :user_id
    ORDER BY created_at, id
    LIMIT 1
""")

_INSERT_SQL = text(f"""
    INSERT INTO store_profiles
        (id, user_id, namespace, display_name, slug, locale, currency,
         status, short_description, country, version)
    VALUES
        (:id, :user_id, :namespace, :display_name, :slug, :locale, :currency,
         :status, CAST(:short_description AS JSONB), :country, 1)
    RETURNING {_COLUMNS}
""")

_UPDATE_SQL = text(f"""
    UPDATE store_profiles
    SET display_name      = COALESCE(CAST(:display_name AS TEXT), display_name),
        slug              = COALESCE(CAST(:slug AS TEXT), slug),
        locale            = COALESCE(CAST(:locale AS TEXT), locale),
        currency          = COALESCE(CAST(:currency AS TEXT), currency),
        short_description = COALESCE(CAST(:short_description AS JSONB), short_description),
        country           = COALESCE(CAST(:country AS TEXT), country),
        status            = COALESCE(CAST(:status AS TEXT), status),
        version           = version + 1,
        updated_at        = NOW()
    WHERE id = :id AND version = :expected_version
    RETURNING {_COLUMNS}
""")

_CURRENT_VERSION_SQL = text("""
    SELECT version FROM store_profiles WHERE id = :id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_profile(row: object) -> StoreProfile:
    raw_description = row.short_description  # type: ignore[attr-defined]
    if isinstance(raw_description, str):
        raw_description = json.loads(raw_description)
    return StoreProfile(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        namespace=row.namespace,  # type: ignore[attr-defined]
        display_name=row.display_name,  # type: ignore[attr-defined]
        slug=row.slug,  # type: ignore[attr-defined]
        locale=row.locale,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        status=ProfileStatus(row.status),  # type: ignore[attr-defined]
        short_description=dict(raw_description or {}),
        country=row.country,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _dump_translations(translations: dict[str, str] | None) -> str | None:
    if translations is None:
        return None
    return json.dumps(translations, ensure_ascii=False, sort_keys=True)


def _constraint_name(exc: IntegrityError) -> str | None:
    """asyncpg exposes constraint_name on the driver error (or its cause)."""
    for candidate in (exc.orig, getattr(exc.orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if isinstance(name, str):
            return name
    message = str(exc.orig)
    for name in (UQ_NAMESPACE_NAME, UQ_SLUG):
        if name in message:
            return name
    return None


def _is_transient(exc: DBAPIError) -> bool:
    return exc.connection_invalidated or isinstance(exc, (OperationalError, InterfaceError))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class StoreProfileRepository:
    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    async def get(self, profile_id: str) -> StoreProfile | None:
        async with self._transaction() as conn:
            result = await conn.execute(_GET_SQL, {"id": profile_id})
            row = result.fetchone()
        return _row_to_profile(row) if row else None

    async def get_by_user(self, user_id: int) -> StoreProfile | None:
        async with self._transaction() as conn:
            result = await conn.execute(_GET_BY_USER_SQL, {"user_id": user_id})
            row = result.fetchone()
        return _row_to_profile(row) if row else None

    async def create(self, draft: NewStoreProfile) -> StoreProfile:
        params = {
            "id": draft.id,
            "user_id": draft.user_id,
            "namespace": draft.namespace,
            "display_name": draft.display_name,
            "slug": draft.slug,
            "locale": draft.locale,
            "currency": draft.currency,
            "status": draft.status.value,
            "short_description": _dump_translations(draft.short_description),
            "country": draft.country,
        }
        async with self._transaction() as conn:
            try:
                result = await conn.execute(_INSERT_SQL, params)
            except IntegrityError as exc:
                raise self._unique_violation(exc, draft.namespace, draft.display_name, draft.slug) from exc
            row = result.fetchone()
        if row is None:
            raise InternalError("INSERT ... RETURNING produced no row")
        return _row_to_profile(row)

    async def update(
        self,
        profile_id: str,
        expected_version: int,
        patch: ProfilePatch,
    ) -> StoreProfile:
        params = {
            "id": profile_id,
            "expected_version": expected_version,
            "display_name": patch.display_name,
            "slug": patch.slug,
            "locale": patch.locale,
            "currency": patch.currency,
            "short_description": _dump_translations(patch.short_description),
            "country": patch.country,
            "status": patch.status.value if patch.status is not None else None,
        }
        async with self._transaction() as conn:
            try:
                result = await conn.execute(_UPDATE_SQL, params)
            except IntegrityError as exc:
                raise self._unique_violation(exc, None, patch.display_name, patch.slug) from exc
            row = result.fetchone()
            if row is None:
                current = await conn.execute(_CURRENT_VERSION_SQL, {"id": profile_id})
                if current.fetchone() is None:
                    raise ProfileNotFoundError(profile_id)
                raise VersionConflictError(profile_id, expected_version)
        return _row_to_profile(row)

    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncConnection]:
        """Pooled connection + transaction, with driver errors translated."""
        try:
            async with self._pool.connection() as conn, conn.begin():
                yield conn
        except AppError:
            raise
        except IntegrityError as exc:
            raise IntegrityViolationError(str(exc.orig)) from exc
        except DBAPIError as exc:
            if _is_transient(exc):
                raise StoreUnavailableError(f"Database round-trip failed: {exc.orig}") from exc
            raise InternalError(f"Database error: {exc.orig}") from exc
        except OSError as exc:
            raise StoreUnavailableError(f"Database connection lost: {exc}") from exc

    @staticmethod
    def _unique_violation(
        exc: IntegrityError,
        namespace: str | None,
        display_name: str | None,
        slug: str | None,
    ) -> AppError:
        constraint = _constraint_name(exc)
        if constraint == UQ_NAMESPACE_NAME:
            return DuplicateNameError(display_name or "", namespace)
        if constraint == UQ_SLUG:
            return DuplicateSlugError(slug or "")
        return IntegrityViolationError(str(exc.orig))
