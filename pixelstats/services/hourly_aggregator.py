"""
Hourly Country Aggregator — pixels placed per country in the last hour.

The live country counters are cumulative since midnight and drop to zero
at the daily rollover. Each run diffs the live totals against the
snapshot taken by the previous run. When the day changed in between,
yesterday's archive is used to recover what was placed before the reset:

    cur >= prev                    -> cur - prev
    rolled over and archived arch  -> cur + arch - prev
    otherwise                      -> cur

Countries that were active yesterday but have not placed anything today
get ``arch - prev`` when that is positive.

The snapshot is advanced on every run, fresh or not, so a stale or
missing baseline yields an empty hour instead of a spike.
"""

import logging
from datetime import datetime

from pixelstats.services.dates import (
    days_before_key,
    did_rollover_occur,
    from_ms,
    is_fresh,
    to_ms,
    utc_now,
)
from pixelstats.store import ScoreStore
from pixelstats.store import keys

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 300


def _parse_ts(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return from_ms(int(raw))
    except ValueError:
        logger.warning("Ignoring malformed snapshot timestamp %r", raw)
        return None


def compute_country_deltas(
    current: dict[str, int],
    previous: dict[str, int],
    archived: dict[str, int],
    rolled_over: bool,
) -> dict[str, int]:
    """Per-country activity between two snapshots.

    *current* must iterate in ranking order; *archived* is consumed as a
    working set (matched countries are removed before the leftovers are
    considered). Negative results are dropped with a warning, zeros are
    omitted.
    """
    remaining = dict(archived)
    deltas: dict[str, int] = {}

    def emit(cc: str, px: int) -> None:
        if px < 0:
            logger.warning(
                "Negative hourly delta %d for %s (cur=%s, prev=%s, arch=%s), skipped",
                px, cc, current.get(cc), previous.get(cc), archived.get(cc),
            )
            return
        if px:
            deltas[cc] = px

    for cc, cur in current.items():
        prev = previous.get(cc, 0)
        arch = remaining.pop(cc, 0)
        if cur >= prev:
            px = cur - prev
        elif rolled_over and arch:
            px = cur + arch - prev
        else:
            px = cur
        emit(cc, px)

    # active yesterday, nothing placed yet today
    for cc, arch in remaining.items():
        prev = previous.get(cc, 0)
        if arch <= prev:
            continue
        emit(cc, arch - prev)

    return deltas


class HourlyCountryAggregator:
    def __init__(self, store: ScoreStore):
        self.store = store

    async def _read(self, key: str, start: int, end: int) -> dict[str, int]:
        entries = await self.store.range_by_rank(key, start, end)
        return {e.member: int(e.score) for e in entries}

    async def store_hourly_country_stats(
        self,
        start: int = 1,
        amount: int = DEFAULT_WINDOW,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """Recompute the hourly country set for ranks ``start .. start+amount-1``.

        Returns the written ``{country: pixels}`` mapping (empty when the
        previous snapshot was missing or stale).
        """
        if start < 1 or amount < 1:
            raise ValueError(f"Invalid window start={start} amount={amount}")
        now = now or utc_now()
        lo, hi = start - 1, start + amount - 2

        current = await self._read(keys.DAILY_COUNTRIES, lo, hi)
        previous = await self._read(keys.PREV_HOURLY_COUNTRIES, lo, hi)
        prev_ts = _parse_ts(await self.store.get_value(keys.PREV_HOURLY_COUNTRIES_TS))

        # advance the snapshot no matter what happens below
        if not await self.store.copy(keys.DAILY_COUNTRIES, keys.PREV_HOURLY_COUNTRIES, replace=True):
            await self.store.delete(keys.PREV_HOURLY_COUNTRIES)
        await self.store.set_value(keys.PREV_HOURLY_COUNTRIES_TS, str(to_ms(now)))
        await self.store.delete(keys.HOURLY_COUNTRIES)

        if not is_fresh(prev_ts, now):
            logger.info("Hourly country snapshot advanced, previous one missing or stale")
            return {}

        rolled_over = did_rollover_occur(prev_ts, now)
        archived: dict[str, int] = {}
        if rolled_over:
            archived = await self._read(
                keys.country_archive(days_before_key(now, 1)), lo, hi,
            )

        deltas = compute_country_deltas(current, previous, archived, rolled_over)
        if deltas:
            await self.store.set_scores(keys.HOURLY_COUNTRIES, deltas)

        logger.info(
            "Hourly country stats: %d countries, %d pixels%s",
            len(deltas), sum(deltas.values()), " (across rollover)" if rolled_over else "",
        )
        return deltas
