"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.sp_common.database import connection_pool, engine
from src.sp_common.errors import AppError
from src.sp_common.redis_client import RedisCacheBackend, close_redis, get_redis
from src.sp_common.request_log import RequestLogMiddleware
from src.sp_common.response import error_response
from src.sp_profile.api.dispatcher import OperationDispatcher
from src.sp_profile.api.router import router as profile_router
from src.sp_profile.application.service import StoreProfileService
from src.sp_profile.domain.cache import CacheBackendProtocol
from src.sp_profile.domain.models import StoreProfileView
from src.sp_profile.domain.repository import StoreProfileRepositoryProtocol
from src.sp_profile.infrastructure.cache import CacheLayer
from src.sp_profile.infrastructure.persistence import StoreProfileRepository
from src.sp_rates.application.refresher import RateRefresher
from src.sp_rates.domain.snapshot import RateSnapshotHolder
from src.sp_rates.infrastructure.source import OpenExchangeRatesSource

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_dispatcher(
    repo: StoreProfileRepositoryProtocol,
    backend: CacheBackendProtocol,
    rates: RateSnapshotHolder,
) -> OperationDispatcher:
    """Wire cache + service + dispatcher from settings."""
    cache: CacheLayer[StoreProfileView] = CacheLayer(
        backend,
        StoreProfileView,
        key_prefix="store_profile",
        variants=settings.SUPPORTED_LOCALES,
        ttl_seconds=settings.CACHE_TTL_SECONDS,
        negative_ttl_seconds=settings.CACHE_NEGATIVE_TTL_SECONDS,
        version_of=lambda view: view.version,
    )
    service = StoreProfileService(
        repo,
        cache,
        rates,
        supported_locales=settings.SUPPORTED_LOCALES,
        supported_currencies=settings.SUPPORTED_CURRENCIES,
        default_locale=settings.DEFAULT_LOCALE,
        default_namespace=settings.DEFAULT_NAMESPACE,
        max_update_attempts=settings.UPDATE_MAX_RETRIES,
        request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )
    return OperationDispatcher(service)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, wire services, start rate refresher. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    backend = RedisCacheBackend(await get_redis())
    if not await backend.ping():
        logger.warning("Redis unreachable at startup; profile reads will bypass the cache")

    rates = RateSnapshotHolder()
    app.state.rates = rates
    app.state.pool = connection_pool
    app.state.dispatcher = build_dispatcher(
        StoreProfileRepository(connection_pool), backend, rates
    )

    http_client = httpx.AsyncClient(timeout=settings.RATES_FETCH_TIMEOUT_SECONDS)
    refresher = RateRefresher(
        OpenExchangeRatesSource(http_client, settings.RATES_URL, settings.RATES_APP_ID),
        rates,
        interval=settings.RATES_REFRESH_INTERVAL_SECONDS,
        fetch_timeout=settings.RATES_FETCH_TIMEOUT_SECONDS,
        backoff_base=settings.RATES_BACKOFF_BASE_SECONDS,
        backoff_max=settings.RATES_BACKOFF_MAX_SECONDS,
        alert_after=settings.RATES_ALERT_AFTER_FAILURES,
    )
    app.state.refresher = refresher
    if settings.RATES_ENABLED:
        refresher.start()
    yield
    # Shutdown
    await refresher.stop()
    await http_client.aclose()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, exc.outcome)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(mode="json"),
    )


app.include_router(profile_router, prefix="/api/v1")


@app.get("/health")
async def health(request: Request) -> dict[str, object]:
    rates: RateSnapshotHolder | None = getattr(request.app.state, "rates", None)
    refresher: RateRefresher | None = getattr(request.app.state, "refresher", None)
    pool = getattr(request.app.state, "pool", None)
    return {
        "status": "ok",
        "version": "0.1.0",
        "pool": pool.stats() if pool is not None else None,
        "rates_generation": rates.current.generation if rates is not None else None,
        "rates_refresher": refresher.state.value if refresher is not None else None,
    }
