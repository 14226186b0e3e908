"""
Stats scheduler — drives the periodic jobs in-process.

Optional: with ``scheduler_enabled`` off, an external cron can call the
admin job endpoints instead. Either way every hourly and daily job goes
through the job ledger, so one period is never processed twice.

Loops never overlap with themselves: each one awaits its job before
sleeping again. A failed tick is logged and retried on the next one; the
freshness windows of the hourly jobs make missed ticks harmless.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from pixelstats.config import settings
from pixelstats.schemas import JobName
from pixelstats.services.counter_sampler import CounterSampler
from pixelstats.services.dates import as_utc, hour_key_of, utc_now
from pixelstats.services.hourly_aggregator import HourlyCountryAggregator
from pixelstats.services.job_log import JobAlreadyRan, has_succeeded, last_success, run_job
from pixelstats.services.rollover import DailyRolloverManager, rollover_date_key
from pixelstats.store import ScoreStore

logger = logging.getLogger(__name__)

# run a little after the full hour so the previous hour is complete
HOURLY_OFFSET_S = 5


def seconds_until_next_hour(now: datetime) -> float:
    now = as_utc(now)
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds() + HOURLY_OFFSET_S


class StatsScheduler:
    def __init__(
        self,
        store: ScoreStore,
        session_factory: async_sessionmaker,
        online_counter: Optional[Callable[[], Awaitable[int]]] = None,
        hourly_window: int | None = None,
        rollover_hour: int | None = None,
    ):
        self.store = store
        self.session_factory = session_factory
        self.online_counter = online_counter
        self.hourly_window = hourly_window or settings.hourly_country_window
        self.rollover_hour = settings.rollover_hour if rollover_hour is None else rollover_hour
        self.aggregator = HourlyCountryAggregator(store)
        self.sampler = CounterSampler(store)
        self.rollover = DailyRolloverManager(store)
        self._tasks: list[asyncio.Task] = []

    # ── single job runs (ledgered) ──

    async def run_rollover(self, now: datetime | None = None):
        now = now or utc_now()
        return await run_job(
            self.session_factory, JobName.ROLLOVER.value, rollover_date_key(now),
            lambda: self.rollover.reset_daily_ranks(now),
        )

    async def run_hourly_countries(self, now: datetime | None = None):
        now = now or utc_now()
        return await run_job(
            self.session_factory, JobName.HOURLY_COUNTRIES.value, hour_key_of(now),
            lambda: self.aggregator.store_hourly_country_stats(1, self.hourly_window, now),
        )

    async def run_hourly_pixels(self, now: datetime | None = None):
        now = now or utc_now()
        return await run_job(
            self.session_factory, JobName.HOURLY_PIXELS.value, hour_key_of(now),
            lambda: self.sampler.record_hourly_pixels_placed(now),
        )

    async def run(self, job: JobName, now: datetime | None = None):
        runners = {
            JobName.ROLLOVER: self.run_rollover,
            JobName.HOURLY_COUNTRIES: self.run_hourly_countries,
            JobName.HOURLY_PIXELS: self.run_hourly_pixels,
        }
        return await runners[job](now)

    async def rollover_due(self, now: datetime | None = None) -> bool:
        """
        Whether the daily rollover should run at *now*.

        Once the rollover hour has passed it is due until it succeeds for
        the day. Without any rollover history it only runs inside the
        rollover hour itself, so a first start in the afternoon does not
        archive a half day.
        """
        now = as_utc(now or utc_now())
        if now.hour < self.rollover_hour:
            return False
        if await has_succeeded(self.session_factory, JobName.ROLLOVER.value, rollover_date_key(now)):
            return False
        if await last_success(self.session_factory, JobName.ROLLOVER.value) is None:
            return now.hour == self.rollover_hour
        return True

    async def catch_up_if_needed(self, now: datetime | None = None):
        """Run a rollover missed while the service was down."""
        now = now or utc_now()
        if not await self.rollover_due(now):
            return None
        logger.info("⚠️  Daily rollover for %s missed, running catch-up now",
                    rollover_date_key(now))
        try:
            return await self.run_rollover(now)
        except JobAlreadyRan:
            return None

    async def run_hourly_tick(self, now: datetime | None = None) -> None:
        """One top-of-the-hour tick.

        A due rollover runs first, so the hourly diffs that follow see the
        reset counters together with yesterday's archive.
        """
        now = now or utc_now()
        runners = [self.run_hourly_countries, self.run_hourly_pixels]
        if await self.rollover_due(now):
            runners.insert(0, self.run_rollover)
        for runner in runners:
            try:
                await runner(now)
            except JobAlreadyRan as e:
                logger.info("Skipping %s", e)

    # ── loops ──

    async def _hourly_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(seconds_until_next_hour(utc_now()))
                await self.run_hourly_tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Hourly stats tick failed: %s", e)

    async def _online_loop(self, interval: int) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                count = await self.online_counter()
                await self.sampler.record_online_user_count(count)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Online user sample failed: %s", e)

    async def _daily_loop(self, interval: int) -> None:
        # retries a rollover the hourly tick could not complete
        while True:
            try:
                await asyncio.sleep(interval)
                if await self.rollover_due():
                    await self.run_rollover()
            except asyncio.CancelledError:
                break
            except JobAlreadyRan as e:
                logger.info("Skipping %s", e)
            except Exception as e:
                logger.error("Daily rollover tick failed: %s", e)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks.append(asyncio.create_task(self._hourly_loop()))
        self._tasks.append(asyncio.create_task(
            self._daily_loop(settings.rollover_check_interval)
        ))
        if self.online_counter is not None:
            self._tasks.append(asyncio.create_task(
                self._online_loop(settings.online_poll_interval)
            ))
        logger.info("⏱️  Stats scheduler started (%d loops)", len(self._tasks))

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
