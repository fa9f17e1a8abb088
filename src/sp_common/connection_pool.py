"""Request-path view of the engine's connection pool.

Sizing, bounded waits and replacement of dead connections are done by
SQLAlchemy's AsyncAdaptedQueuePool (configured in src/sp_common/database.py
with max_overflow=0 and pool_pre_ping). This adapter translates pool
failures into the service's error taxonomy:

  - checkout wait longer than pool_timeout -> PoolExhaustedError
  - cannot open a connection              -> StoreUnavailableError
  - unit of work cancelled mid round-trip -> connection invalidated; the
    pool opens a fresh one on a later checkout, never during release
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from src.sp_common.errors import PoolExhaustedError, StoreUnavailableError

logger = logging.getLogger(__name__)


class ConnectionPool:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._discarded = 0

    async def acquire(self) -> AsyncConnection:
        try:
            return await self._engine.connect()
        except PoolTimeoutError:
            pool = self._engine.pool
            logger.warning(
                "Connection pool exhausted: %d/%d in use after %.2fs",
                pool.checkedout(), pool.size(), pool.timeout(),
            )
            raise PoolExhaustedError(pool.timeout()) from None
        except (DBAPIError, OSError) as exc:
            logger.error("Failed to open database connection: %s", exc)
            raise StoreUnavailableError("Cannot connect to system of record") from exc

    async def release(self, conn: AsyncConnection, *, discard: bool = False) -> None:
        """Return `conn` to the pool; `discard` drops the DBAPI connection."""
        if discard and not conn.invalidated:
            self._discarded += 1
            await conn.invalidate()
        await conn.close()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Acquire for one unit of work; always released, even on cancel."""
        conn = await self.acquire()
        discard = False
        try:
            yield conn
        except asyncio.CancelledError:
            # Cancelled mid round-trip: the wire state is unknown.
            discard = True
            raise
        finally:
            await self.release(conn, discard=discard)

    def stats(self) -> dict[str, int]:
        pool = self._engine.pool
        return {
            "size": pool.size(),
            "in_use": pool.checkedout(),
            "idle": pool.checkedin(),
            "discarded": self._discarded,
        }
