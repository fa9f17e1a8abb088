"""Versioned, immutable exchange-rate snapshot and its shared holder.

Readers take `holder.current` once and use that object for the whole
computation; the refresher replaces the reference with a fully built
snapshot, so a reader never sees a mix of two fetches.

Rates are quoted against a single base currency (OpenExchangeRates
convention: 1 BASE = rate QUOTE). Cross rates go through the base.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType


@dataclass(frozen=True)
class RateSnapshot:
    base: str
    rates: Mapping[tuple[str, str], Decimal]
    fetched_at: datetime | None
    generation: int

    @classmethod
    def empty(cls, base: str = "USD") -> "RateSnapshot":
        return cls(base=base, rates=MappingProxyType({}), fetched_at=None, generation=0)

    @property
    def is_empty(self) -> bool:
        return not self.rates

    def rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        """Units of `to_currency` per one unit of `from_currency`, or None."""
        if from_currency == to_currency:
            return Decimal(1)
        from_quote = self._quote(from_currency)
        to_quote = self._quote(to_currency)
        if from_quote is None or to_quote is None:
            return None
        return to_quote / from_quote

    def _quote(self, currency: str) -> Decimal | None:
        if currency == self.base:
            return Decimal(1)
        value = self.rates.get((self.base, currency))
        if value is None or value <= 0:
            return None
        return value


class RateSnapshotHolder:
    """Single shared reference to the current snapshot.

    Only the rate refresher calls publish(); everyone else reads `current`.
    """

    def __init__(self, base: str = "USD") -> None:
        self._current = RateSnapshot.empty(base)

    @property
    def current(self) -> RateSnapshot:
        return self._current

    def publish(
        self,
        base: str,
        quotes: Mapping[str, Decimal],
        fetched_at: datetime,
    ) -> RateSnapshot:
        pairs = {(base, currency): rate for currency, rate in quotes.items() if currency != base}
        snapshot = RateSnapshot(
            base=base,
            rates=MappingProxyType(pairs),
            fetched_at=fetched_at,
            generation=self._current.generation + 1,
        )
        self._current = snapshot
        return snapshot
