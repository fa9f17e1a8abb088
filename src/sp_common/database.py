"""Async engine and the request-path connection pool.

Repositories never see the engine; they borrow connections from
`connection_pool` (src/sp_common/connection_pool.py).
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from config.settings import settings
from src.sp_common.connection_pool import ConnectionPool

# Fixed-size pool: no overflow connections, bounded checkout wait.
engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=0,
    pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
    pool_pre_ping=True,
)

connection_pool = ConnectionPool(engine)
