"""Cache backend Protocol.

The cache layer only needs single-key GET/SET-with-TTL and one atomic
multi-key DELETE. Implementations raise CacheUnavailableError when the
backend cannot be reached.

Production: src/sp_common/redis_client.py::RedisCacheBackend.
Tests: tests/fakes.py::InMemoryCacheBackend.
"""

from typing import Protocol


class CacheBackendProtocol(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, *keys: str) -> int: ...
