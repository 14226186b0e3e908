"""
Daily Rollover Manager — archive the day's rankings and start a new day.

Runs once per UTC day, shortly after midnight:

1. snapshot the top 10 users of the day
2. rename the daily user set to ``ds:<yesterday>``
3. rename the daily country set to ``cds:<yesterday>``
4. push the day's pixel total to the daily series
5. purge the archives that fell out of the retention window

Not idempotent: the live sets are empty after the first run, so running it
twice on the same day would leave nothing useful for the second one. The
job ledger keeps the scheduler and admin triggers to one run per date key.
A failure part way through is not rolled back.
"""

import logging
from datetime import datetime

from pixelstats.schemas import RolloverResult
from pixelstats.services.counter_sampler import push_capped
from pixelstats.services.dates import days_before_key, utc_now
from pixelstats.store import ScoreStore, sum_scores
from pixelstats.store import keys

logger = logging.getLogger(__name__)

# ── tunables ──
PREV_TOP_SIZE = 10
DAILY_SERIES_CAP = 29
ARCHIVE_RETENTION_DAYS = 21


def rollover_date_key(now: datetime) -> str:
    """Date key the rollover at *now* archives under (the day that just ended)."""
    return days_before_key(now, 1)


class DailyRolloverManager:
    def __init__(self, store: ScoreStore):
        self.store = store

    async def reset_daily_ranks(self, now: datetime | None = None) -> RolloverResult:
        now = now or utc_now()
        date_key = rollover_date_key(now)
        purge_key = days_before_key(now, ARCHIVE_RETENTION_DAYS)
        result = RolloverResult(date_key=date_key, purged_date_key=purge_key)

        logger.info("📦 Daily rollover into %s", date_key)

        result.prev_top_count = await self.store.store_range_by_rank(
            keys.PREV_DAY_TOP, keys.DAILY_USERS, 0, PREV_TOP_SIZE - 1,
        )

        user_archive = keys.user_archive(date_key)
        result.users_archived = await self.store.rename(keys.DAILY_USERS, user_archive)
        if not result.users_archived:
            logger.warning("No daily user ranking to archive for %s", date_key)

        country_archive = keys.country_archive(date_key)
        result.countries_archived = await self.store.rename(keys.DAILY_COUNTRIES, country_archive)
        if not result.countries_archived:
            logger.warning("No daily country ranking to archive for %s", date_key)

        if result.countries_archived:
            result.daily_pixels = await sum_scores(self.store, country_archive)
        await push_capped(self.store, keys.DAILY_PIXELS, result.daily_pixels, DAILY_SERIES_CAP)

        purged = await self.store.delete(
            keys.user_archive(purge_key), keys.country_archive(purge_key),
        )

        logger.info(
            "📦 Rollover %s complete — top %d saved, %d pixels, %d archive(s) purged for %s",
            date_key, result.prev_top_count, result.daily_pixels, purged, purge_key,
        )
        return result
