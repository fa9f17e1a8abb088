"""RateRefresher: periodic loop that republishes the shared rate snapshot.

State machine (one cycle per tick):

    IDLE -> FETCHING -> PUBLISHED -> IDLE   (sleep refresh interval)
                     -> FAILED    -> IDLE   (sleep exponential backoff)

A failed tick keeps the current snapshot (stale beats unavailable) and
does not touch its generation. After `alert_after` consecutive failures
every further failure is logged at ERROR as an alert.

The loop runs as its own asyncio task and shares nothing with the request
path except the RateSnapshotHolder reference.
"""

import asyncio
import logging

from src.sp_common.enums import RefresherState
from src.sp_rates.domain.snapshot import RateSnapshotHolder
from src.sp_rates.infrastructure.source import RateFetchError, RateSourceProtocol

logger = logging.getLogger(__name__)


class RateRefresher:
    def __init__(
        self,
        source: RateSourceProtocol,
        holder: RateSnapshotHolder,
        *,
        interval: float,
        fetch_timeout: float,
        backoff_base: float,
        backoff_max: float,
        alert_after: int,
    ) -> None:
        self._source = source
        self._holder = holder
        self._interval = interval
        self._fetch_timeout = fetch_timeout
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._alert_after = alert_after
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

        self.state = RefresherState.IDLE
        self.consecutive_failures = 0
        self.alerts_raised = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> float:
        """Run one fetch/publish cycle. Returns the delay before the next one."""
        self.state = RefresherState.FETCHING
        try:
            async with asyncio.timeout(self._fetch_timeout):
                fetched = await self._source.fetch()
        except TimeoutError:
            return self._record_failure(f"fetch timed out after {self._fetch_timeout:g}s")
        except RateFetchError as exc:
            return self._record_failure(str(exc))

        snapshot = self._holder.publish(fetched.base, fetched.quotes, fetched.fetched_at)
        self.state = RefresherState.PUBLISHED
        if self.consecutive_failures:
            logger.info("Rate refresh recovered after %d failures", self.consecutive_failures)
        self.consecutive_failures = 0
        logger.info(
            "Published rate snapshot gen=%d base=%s pairs=%d",
            snapshot.generation, snapshot.base, len(snapshot.rates),
        )
        return self._interval

    def next_backoff(self, failures: int) -> float:
        if failures <= 0:
            return self._interval
        return min(self._backoff_base * 2 ** (failures - 1), self._backoff_max)

    async def run(self) -> None:
        while not self._stop.is_set():
            try:
                delay = await self.tick()
            except Exception as exc:  # noqa: BLE001 -- the loop must outlive any bug in a tick
                logger.exception("Unexpected error in rate refresh tick")
                delay = self._record_failure(repr(exc))
            self.state = RefresherState.IDLE
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except TimeoutError:
                continue

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self.run(), name="rate-refresher")

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    def _record_failure(self, reason: str) -> float:
        self.state = RefresherState.FAILED
        self.consecutive_failures += 1
        delay = self.next_backoff(self.consecutive_failures)
        if self.consecutive_failures >= self._alert_after:
            self.alerts_raised += 1
            logger.error(
                "ALERT rate refresh failing: %d consecutive failures, serving generation %d (%s)",
                self.consecutive_failures, self._holder.current.generation, reason,
            )
        else:
            logger.warning(
                "Rate refresh failed (%d in a row), retry in %.0fs: %s",
                self.consecutive_failures, delay, reason,
            )
        return delay
