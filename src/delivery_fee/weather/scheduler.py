"""Cron-driven ingestion loop for weather observations."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from croniter import croniter

from delivery_fee.config import FETCH_CRON
from delivery_fee.weather.service import ObservationFetcher
from delivery_fee.weather.store import ObservationStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WeatherIngestionScheduler:
    """Runs fetch-and-store cycles on a cron cadence until stopped.

    One failed cycle is logged and the next one is scheduled as usual. Cycles
    never overlap: the next wait starts only after the current cycle returns.
    """

    def __init__(
        self,
        fetcher: ObservationFetcher,
        store: ObservationStore,
        cron_expression: str = FETCH_CRON,
        now: Callable[[], datetime] = _utcnow,
        on_stored: Optional[Callable[[], Awaitable[None]]] = None
    ):
        """Initialize the scheduler.

        Args:
            fetcher: Observation fetcher
            store: Store that receives each fetched batch
            cron_expression: Five-field cron cadence, evaluated in UTC
            now: Clock returning an aware UTC datetime
            on_stored: Awaited after every successful store, e.g. to drop cached quotes

        Raises:
            ValueError: If the cron expression is invalid
        """
        if not croniter.is_valid(cron_expression):
            raise ValueError(f"Invalid cron expression: {cron_expression!r}")

        self.fetcher = fetcher
        self.store = store
        self.cron_expression = cron_expression
        self.now = now
        self.on_stored = on_stored
        self._stop_event = asyncio.Event()
        logger.info(f"Weather ingestion scheduler initialized with cron expression: {cron_expression}")

    def next_run_time(self, after: Optional[datetime] = None) -> datetime:
        """Compute the next cadence time strictly after the current time.

        Args:
            after: Reference time (defaults to now)

        Returns:
            Next trigger time in UTC
        """
        current = self.now()
        reference = after or current
        next_run = croniter(self.cron_expression, reference).get_next(datetime)

        if next_run <= current:
            next_run = croniter(self.cron_expression, current + timedelta(minutes=1)).get_next(datetime)

        return next_run

    async def run_cycle(self) -> Optional[int]:
        """Fetch one batch and store it.

        Returns:
            Number of stored observations, or None if the cycle failed
        """
        logger.info("Fetching weather data")
        try:
            observations = await self.fetcher.fetch()
            stored = await self.store.append(observations)
        except Exception as e:
            logger.error(f"Error fetching or saving weather data: {e}", exc_info=True)
            return None

        if self.on_stored is not None:
            try:
                await self.on_stored()
            except Exception as e:
                logger.error(f"Error running post-store hook: {e}", exc_info=True)

        logger.info(f"Successfully fetched and saved {stored} weather observations")
        return stored

    async def run(self, run_immediately: bool = False) -> None:
        """Run cycles on the cadence until stop() is called or the task is cancelled.

        Args:
            run_immediately: Run one cycle before waiting for the first cadence time
        """
        logger.info("Weather ingestion scheduler is starting")

        if run_immediately and not self._stop_event.is_set():
            await self.run_cycle()

        while not self._stop_event.is_set():
            next_run = self.next_run_time()
            delay = (next_run - self.now()).total_seconds()
            logger.info(f"Next weather data fetch scheduled at {next_run.isoformat()} (in {delay:.0f}s)")

            if await self._wait_for_stop(max(delay, 0.0)):
                break

            await self.run_cycle()

        logger.info("Weather ingestion scheduler is stopping")

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Wait up to timeout seconds; True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def stop(self) -> None:
        """Request shutdown, abandoning any pending wait."""
        self._stop_event.set()
