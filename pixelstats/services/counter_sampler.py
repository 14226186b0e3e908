"""
Counter Sampler — appends samples to the bounded series.

Online-user counts come from whoever polls the websocket layer; the
hourly pixel count is derived from the cumulative daily country totals.
"""

import logging
from datetime import datetime

from pixelstats.services.dates import (
    days_before_key,
    from_ms,
    is_fresh,
    to_ms,
    utc_now,
)
from pixelstats.store import ScoreStore, sum_scores
from pixelstats.store import keys

logger = logging.getLogger(__name__)

# ── tunables ──
HOURLY_SERIES_CAP = 169         # 7 days of hourly samples + the current one


def _parse_sample(raw: str | None) -> tuple[datetime, int] | None:
    """Decode the stored ``"<ts_ms>,<sum>"`` pair."""
    if not raw:
        return None
    try:
        ts, total = raw.split(",")
        return from_ms(int(ts)), int(total)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed hourly pixel sample %r", raw)
        return None


async def push_capped(store: ScoreStore, key: str, value: int, cap: int) -> None:
    """Push *value* to the head of a series and drop everything past *cap*."""
    await store.push_front(key, str(value))
    await store.trim(key, 0, cap - 1)


class CounterSampler:
    def __init__(self, store: ScoreStore):
        self.store = store

    async def record_online_user_count(self, count: int) -> None:
        if count < 0:
            raise ValueError(f"Online user count cannot be negative: {count}")
        await push_capped(self.store, keys.ONLINE_USERS, count, HOURLY_SERIES_CAP)

    async def record_hourly_pixels_placed(self, now: datetime | None = None) -> int | None:
        """
        Push the number of pixels placed since the previous sample.

        The stored ``(timestamp, sum)`` pair is always replaced. A delta is
        only pushed when the previous sample is inside the freshness window;
        if the daily counters were reset in between, yesterday's archived
        country total is added back.

        Returns the pushed delta, or ``None`` when nothing was pushed.
        """
        now = now or utc_now()
        prev = _parse_sample(await self.store.get_value(keys.PREV_HOURLY_PLACED))

        cur_sum = await sum_scores(self.store, keys.DAILY_COUNTRIES)
        await self.store.set_value(keys.PREV_HOURLY_PLACED, f"{to_ms(now)},{cur_sum}")

        if prev is None or not is_fresh(prev[0], now):
            logger.info("Hourly pixel sample stored (%d), no fresh baseline", cur_sum)
            return None

        prev_sum = prev[1]
        if prev_sum > cur_sum:
            # daily counters were reset since the last sample
            yesterday = keys.country_archive(days_before_key(now, 1))
            cur_sum += await sum_scores(self.store, yesterday)

        delta = cur_sum - prev_sum
        if delta < 0:
            logger.warning(
                "Negative hourly pixel delta %d (prev=%d, cur=%d), not recorded",
                delta, prev_sum, cur_sum,
            )
            return None

        await push_capped(self.store, keys.HOURLY_PIXELS, delta, HOURLY_SERIES_CAP)
        logger.info("Hourly pixels placed: %d", delta)
        return delta
