"""Shared test fixtures.

Nothing here touches Postgres or Redis: the app's dispatcher is rebuilt on
top of the in-memory doubles from tests/fakes.py.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app, build_dispatcher
from src.sp_profile.application.service import StoreProfileService
from src.sp_profile.domain.models import StoreProfileView
from src.sp_profile.infrastructure.cache import CacheLayer
from src.sp_rates.domain.snapshot import RateSnapshotHolder
from tests.fakes import InMemoryCacheBackend, InMemoryStoreProfileRepository

LOCALES = ["en", "ru", "de"]
CURRENCIES = ["USD", "EUR", "RUB"]


@pytest.fixture
def repo() -> InMemoryStoreProfileRepository:
    return InMemoryStoreProfileRepository()


@pytest.fixture
def backend() -> InMemoryCacheBackend:
    return InMemoryCacheBackend()


@pytest.fixture
def rates() -> RateSnapshotHolder:
    holder = RateSnapshotHolder()
    holder.publish(
        "USD",
        {"USD": Decimal(1), "EUR": Decimal("0.5"), "RUB": Decimal("100")},
        datetime(2026, 1, 1, tzinfo=UTC),
    )
    return holder


@pytest.fixture
def cache(backend: InMemoryCacheBackend) -> CacheLayer[StoreProfileView]:
    return CacheLayer(
        backend,
        StoreProfileView,
        key_prefix="store_profile",
        variants=LOCALES,
        ttl_seconds=300,
        negative_ttl_seconds=15,
        version_of=lambda view: view.version,
    )


@pytest.fixture
def service(
    repo: InMemoryStoreProfileRepository,
    cache: CacheLayer[StoreProfileView],
    rates: RateSnapshotHolder,
) -> StoreProfileService:
    counter = iter(range(1, 10_000))
    return StoreProfileService(
        repo,
        cache,
        rates,
        supported_locales=LOCALES,
        supported_currencies=CURRENCIES,
        default_locale="en",
        default_namespace="default",
        max_update_attempts=3,
        request_timeout=2.0,
        id_factory=lambda: f"store-{next(counter)}",
    )


@pytest.fixture
async def client(
    repo: InMemoryStoreProfileRepository,
    backend: InMemoryCacheBackend,
    rates: RateSnapshotHolder,
) -> AsyncClient:
    """Async HTTP client for the FastAPI app, wired to in-memory doubles."""
    app.state.dispatcher = build_dispatcher(repo, backend, rates)
    app.state.rates = rates
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
