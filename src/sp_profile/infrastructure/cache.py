"""Read-through / write-invalidate cache keyed by (identity, locale).

Policy:
  - Cache-aside: the cache never reads the database itself; on a miss it
    calls the loader the caller passes in.
  - Negative caching: a loader result of None (NotFound) is cached with
    the short negative TTL.
  - Stampede control: concurrent fetches of the same key share a single
    in-flight load (backend GET + loader + SET); other callers await it.
  - Invalidate-on-write: invalidate(identity) deletes every locale variant
    in one DEL and marks in-flight loads for that identity stale, so a
    load that started before the write can never store its older value.
  - Degrade: if the backend is unreachable on read, the loader result is
    returned uncached and the degradation is logged.

Expiry is checked against `expires_at` on read as well as by the backend
TTL, so an expired entry is never served even if the backend keeps it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from src.sp_common.datetime_utils import epoch_seconds
from src.sp_common.errors import CacheUnavailableError
from src.sp_profile.domain.cache import CacheBackendProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheEntry(BaseModel, Generic[T]):
    """Serialized form of one cache key. value=None is a cached NotFound."""

    value: T | None = None
    version: int = 0
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(eq=False)
class _InflightLoad:
    task: "asyncio.Task[object] | None" = None
    waiters: int = 0
    stale: bool = False


class CacheLayer(Generic[T]):
    def __init__(
        self,
        backend: CacheBackendProtocol,
        value_type: type[T],
        *,
        key_prefix: str,
        variants: Sequence[str],
        ttl_seconds: int,
        negative_ttl_seconds: int,
        version_of: Callable[[T], int],
        clock: Callable[[], float] = epoch_seconds,
    ) -> None:
        if not variants:
            raise ValueError("at least one cache variant (locale) is required")
        self._backend = backend
        self._entry_model = CacheEntry[value_type]  # type: ignore[valid-type]
        self._key_prefix = key_prefix
        self._variants = tuple(variants)
        self._ttl = ttl_seconds
        self._negative_ttl = negative_ttl_seconds
        self._version_of = version_of
        self._clock = clock
        self._inflight: dict[str, _InflightLoad] = {}

    def key(self, identity: str, locale: str) -> str:
        return f"{self._key_prefix}:{identity}:{locale}"

    async def fetch(
        self,
        identity: str,
        locale: str,
        loader: Callable[[], Awaitable[T | None]],
    ) -> T | None:
        if locale not in self._variants:
            raise ValueError(f"unknown cache variant: {locale}")
        key = self.key(identity, locale)

        load = self._inflight.get(key)
        if load is None:
            load = _InflightLoad()
            load.task = asyncio.create_task(self._load(key, loader, load))
            load.task.add_done_callback(lambda _t, k=key, ld=load: self._forget(k, ld))
            self._inflight[key] = load

        load.waiters += 1
        try:
            return await asyncio.shield(load.task)  # type: ignore[return-value]
        finally:
            load.waiters -= 1
            # Last waiter gone (e.g. request timeout): abort the round-trip.
            if load.waiters == 0 and not load.task.done():  # type: ignore[union-attr]
                load.task.cancel()  # type: ignore[union-attr]

    async def invalidate(self, identity: str) -> None:
        """Drop every locale variant of `identity`. Raises CacheUnavailableError."""
        keys = [self.key(identity, variant) for variant in self._variants]
        for key in keys:
            load = self._inflight.pop(key, None)
            if load is not None:
                load.stale = True
        await self._backend.delete(*keys)
        logger.debug("Invalidated %d cache keys for %s", len(keys), identity)

    def inflight_count(self) -> int:
        return len(self._inflight)

    # -----------------------------------------------------------------------

    async def _load(
        self,
        key: str,
        loader: Callable[[], Awaitable[T | None]],
        load: _InflightLoad,
    ) -> T | None:
        try:
            raw = await self._backend.get(key)
        except CacheUnavailableError as exc:
            logger.warning("Cache degraded, serving %s directly from loader: %s", key, exc.message)
            return await loader()

        if raw is not None:
            entry = self._decode(key, raw)
            if entry is not None and not entry.is_expired(self._clock()):
                return entry.value

        value = await loader()
        if load.stale:
            return value

        await self._store(key, value)
        if load.stale:
            # Invalidated while SET was in flight; make sure the DEL wins.
            await self._delete_quietly(key)
        return value

    async def _store(self, key: str, value: T | None) -> None:
        ttl = self._negative_ttl if value is None else self._ttl
        entry = self._entry_model(
            value=value,
            version=0 if value is None else self._version_of(value),
            expires_at=self._clock() + ttl,
        )
        try:
            await self._backend.set(key, entry.model_dump_json(), ttl)
        except CacheUnavailableError as exc:
            logger.warning("Cache degraded, %s not stored: %s", key, exc.message)

    async def _delete_quietly(self, key: str) -> None:
        try:
            await self._backend.delete(key)
        except CacheUnavailableError as exc:
            logger.error("Could not drop stale cache key %s: %s", key, exc.message)

    def _decode(self, key: str, raw: str) -> "CacheEntry[T] | None":
        try:
            return self._entry_model.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def _forget(self, key: str, load: _InflightLoad) -> None:
        if self._inflight.get(key) is load:
            del self._inflight[key]
