"""
History Query — read-only views for the presentation layer.

Never writes. An archive that does not exist (not created yet, purged, or
renamed away mid-read) reads as an empty ranking.
"""

import asyncio
from datetime import datetime

from pixelstats.schemas import CountryEntry, RankEntry, TopDailyHistory, UserPixels
from pixelstats.services.dates import days_before_key, utc_now
from pixelstats.store import ScoreStore
from pixelstats.store import keys

HISTORY_DAYS = 13
HISTORY_TOP = 10


def _page_bounds(start: int, amount: int) -> tuple[int, int] | None:
    """1-based inclusive page -> 0-based store range, ``None`` for an empty page."""
    if start < 1:
        raise ValueError(f"Ranks start at 1, got start={start}")
    if amount < 1:
        return None
    return start - 1, start + amount - 2


class HistoryQuery:
    def __init__(self, store: ScoreStore):
        self.store = store

    async def _series(self, key: str) -> list[int]:
        return [int(v) for v in await self.store.list_range(key, 0, -1)]

    async def _countries(self, key: str, start: int, amount: int) -> list[CountryEntry]:
        bounds = _page_bounds(start, amount)
        if bounds is None:
            return []
        entries = await self.store.range_by_rank(key, *bounds)
        return [CountryEntry(country_code=e.member, pixels=int(e.score)) for e in entries]

    async def _top_users(self, key: str) -> list[UserPixels]:
        entries = await self.store.range_by_rank(key, 0, HISTORY_TOP - 1)
        return [UserPixels(user_id=int(e.member), pixels=int(e.score)) for e in entries]

    async def get_ranks(self, daily: bool, start: int, amount: int) -> list[RankEntry]:
        """
        One page of the total (``daily=False``) or daily user ranking.

        The other dimension's score and rank are looked up in batch for
        the members of the page; members missing there stay ``None``.
        """
        bounds = _page_bounds(start, amount)
        if bounds is None:
            return []
        key, other_key = (
            (keys.DAILY_USERS, keys.TOTAL_USERS) if daily
            else (keys.TOTAL_USERS, keys.DAILY_USERS)
        )

        page = await self.store.range_by_rank(key, *bounds)
        if not page:
            return []
        members = [e.member for e in page]
        other_scores, other_ranks = await asyncio.gather(
            self.store.batch_get_scores(other_key, members),
            self.store.batch_get_ranks(other_key, members),
        )

        ret = []
        for i, entry in enumerate(page):
            o_score = None if other_scores[i] is None else int(other_scores[i])
            o_rank = None if other_ranks[i] is None else other_ranks[i] + 1
            primary = {"score": int(entry.score), "rank": start + i}
            other = {"score": o_score, "rank": o_rank}
            daily_part, total_part = (primary, other) if daily else (other, primary)
            ret.append(RankEntry(
                user_id=int(entry.member),
                total_score=total_part["score"],
                total_rank=total_part["rank"],
                daily_score=daily_part["score"],
                daily_rank=daily_part["rank"],
            ))
        return ret

    async def get_country_ranks(self, start: int, amount: int) -> list[CountryEntry]:
        return await self._countries(keys.DAILY_COUNTRIES, start, amount)

    async def get_hourly_country_stats(self, start: int, amount: int) -> list[CountryEntry]:
        return await self._countries(keys.HOURLY_COUNTRIES, start, amount)

    async def get_prev_top(self) -> list[UserPixels]:
        return await self._top_users(keys.PREV_DAY_TOP)

    async def get_online_user_stats(self) -> list[int]:
        return await self._series(keys.ONLINE_USERS)

    async def get_hourly_pixel_stats(self) -> list[int]:
        return await self._series(keys.HOURLY_PIXELS)

    async def get_daily_pixel_stats(self) -> list[int]:
        return await self._series(keys.DAILY_PIXELS)

    async def get_top_daily_history(self, now: datetime | None = None) -> TopDailyHistory:
        """Top 10 users for each of the last 13 archived days, newest first.

        ``users`` lists every user id appearing anywhere in ``stats`` once,
        in order of first appearance.
        """
        now = now or utc_now()
        stats: list[list[UserPixels]] = []
        users: list[int] = []
        seen: set[int] = set()
        for days in range(1, HISTORY_DAYS + 1):
            day = await self._top_users(keys.user_archive(days_before_key(now, days)))
            for row in day:
                if row.user_id not in seen:
                    seen.add(row.user_id)
                    users.append(row.user_id)
            stats.append(day)
        return TopDailyHistory(stats=stats, users=users)

    async def get_country_daily_history(self, now: datetime | None = None) -> list[list[CountryEntry]]:
        """Today's live top 10 countries, then the top 10 of each of the last 13 days."""
        now = now or utc_now()
        ret = [await self._countries(keys.DAILY_COUNTRIES, 1, HISTORY_TOP)]
        for days in range(1, HISTORY_DAYS + 1):
            archive = keys.country_archive(days_before_key(now, days))
            ret.append(await self._countries(archive, 1, HISTORY_TOP))
        return ret
