"""External rate source (OpenExchangeRates-compatible `latest.json`).

Response shape:
    {"base": "USD", "timestamp": 1700000000, "rates": {"EUR": 0.92, ...}}

1 BASE = rates[QUOTE] units of QUOTE. Any transport or payload problem is
raised as RateFetchError; the refresher treats all of them alike.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import httpx

from src.sp_common.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class RateFetchError(RuntimeError):
    pass


@dataclass(frozen=True)
class FetchedRates:
    base: str
    quotes: dict[str, Decimal]
    fetched_at: datetime


class RateSourceProtocol(Protocol):
    async def fetch(self) -> FetchedRates: ...


class OpenExchangeRatesSource:
    def __init__(self, client: httpx.AsyncClient, url: str, app_id: str) -> None:
        self._client = client
        self._url = url
        self._app_id = app_id

    async def fetch(self) -> FetchedRates:
        if not self._app_id:
            raise RateFetchError("RATES_APP_ID is not set")
        try:
            resp = await self._client.get(self._url, params={"app_id": self._app_id})
        except httpx.HTTPError as exc:
            raise RateFetchError(f"Rate source request failed: {exc!r}") from exc
        if resp.status_code != 200:
            logger.error("Rate source error: %d - %s", resp.status_code, resp.text[:200])
            raise RateFetchError(f"Rate source returned HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise RateFetchError("Rate source returned invalid JSON") from exc
        return parse_latest(data)


def parse_latest(data: Any) -> FetchedRates:
    if not isinstance(data, dict):
        raise RateFetchError("Unexpected response from rate source")

    base = str(data.get("base", "USD")).upper()

    timestamp = data.get("timestamp")
    if isinstance(timestamp, int):
        fetched_at = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    else:
        fetched_at = utc_now()

    rates_raw = data.get("rates")
    if not isinstance(rates_raw, dict):
        raise RateFetchError("Missing rates in rate source response")

    quotes: dict[str, Decimal] = {}
    for currency, value in rates_raw.items():
        if isinstance(value, bool):
            continue
        try:
            rate = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            continue
        if rate.is_finite() and rate > 0:
            quotes[str(currency).upper()] = rate

    if not quotes:
        raise RateFetchError("Empty rates in rate source response")

    quotes.setdefault(base, Decimal(1))
    return FetchedRates(base=base, quotes=quotes, fetched_at=fetched_at)
