"""
Tests for the Counter Sampler — online counts and hourly pixel deltas.
"""

from datetime import timedelta

import pytest

from pixelstats.services.counter_sampler import HOURLY_SERIES_CAP, CounterSampler
from pixelstats.services.dates import to_ms
from pixelstats.store import keys
from tests.helpers import fill, utc


class TestOnlineUserCount:
    async def test_most_recent_first(self, store):
        sampler = CounterSampler(store)
        for n in (10, 20, 30):
            await sampler.record_online_user_count(n)
        assert await store.list_range(keys.ONLINE_USERS, 0, -1) == ["30", "20", "10"]

    async def test_capped(self, store):
        sampler = CounterSampler(store)
        for n in range(HOURLY_SERIES_CAP + 25):
            await sampler.record_online_user_count(n)
        series = await store.list_range(keys.ONLINE_USERS, 0, -1)
        assert len(series) == HOURLY_SERIES_CAP == 169
        assert series[0] == str(HOURLY_SERIES_CAP + 24)

    async def test_negative_rejected(self, store):
        with pytest.raises(ValueError):
            await CounterSampler(store).record_online_user_count(-1)


class TestHourlyPixels:
    async def test_first_run_only_stores_baseline(self, store):
        now = utc(2026, 1, 14, 12, 0)
        await fill(store, keys.DAILY_COUNTRIES, {"de": 40, "fr": 30})

        assert await CounterSampler(store).record_hourly_pixels_placed(now) is None
        assert await store.get_value(keys.PREV_HOURLY_PLACED) == f"{to_ms(now)},70"
        assert await store.list_range(keys.HOURLY_PIXELS, 0, -1) == []

    async def test_fresh_delta(self, store):
        now = utc(2026, 1, 14, 12, 0)
        prev = now - timedelta(hours=1)
        await store.set_value(keys.PREV_HOURLY_PLACED, f"{to_ms(prev)},50")
        await fill(store, keys.DAILY_COUNTRIES, {"de": 40, "fr": 30})

        assert await CounterSampler(store).record_hourly_pixels_placed(now) == 20
        assert await store.list_range(keys.HOURLY_PIXELS, 0, -1) == ["20"]

    async def test_stale_baseline_pushes_nothing_but_is_replaced(self, store):
        now = utc(2026, 1, 14, 12, 0)
        prev = now - timedelta(hours=2)
        await store.set_value(keys.PREV_HOURLY_PLACED, f"{to_ms(prev)},10")
        await fill(store, keys.DAILY_COUNTRIES, {"de": 40})

        assert await CounterSampler(store).record_hourly_pixels_placed(now) is None
        assert await store.list_range(keys.HOURLY_PIXELS, 0, -1) == []
        assert await store.get_value(keys.PREV_HOURLY_PLACED) == f"{to_ms(now)},40"

    async def test_rollover_adds_yesterdays_archive(self, store):
        now = utc(2026, 1, 14, 0, 30)
        prev = utc(2026, 1, 13, 23, 30)
        await store.set_value(keys.PREV_HOURLY_PLACED, f"{to_ms(prev)},900")
        await fill(store, keys.country_archive("20260113"), {"de": 600, "fr": 400})
        await fill(store, keys.DAILY_COUNTRIES, {"de": 15})

        # 15 + 1000 - 900
        assert await CounterSampler(store).record_hourly_pixels_placed(now) == 115

    async def test_malformed_baseline_treated_as_missing(self, store):
        await store.set_value(keys.PREV_HOURLY_PLACED, "garbage")
        assert await CounterSampler(store).record_hourly_pixels_placed(utc(2026, 1, 14)) is None

    async def test_negative_delta_not_recorded(self, store):
        now = utc(2026, 1, 14, 0, 30)
        prev = utc(2026, 1, 13, 23, 30)
        # reset happened but yesterday's archive is gone
        await store.set_value(keys.PREV_HOURLY_PLACED, f"{to_ms(prev)},900")
        await fill(store, keys.DAILY_COUNTRIES, {"de": 15})

        assert await CounterSampler(store).record_hourly_pixels_placed(now) is None
        assert await store.list_range(keys.HOURLY_PIXELS, 0, -1) == []

    async def test_series_capped(self, store):
        sampler = CounterSampler(store)
        now = utc(2026, 1, 1, 0, 0)
        await fill(store, keys.DAILY_COUNTRIES, {"de": 1})
        for _ in range(HOURLY_SERIES_CAP + 5):
            await sampler.record_hourly_pixels_placed(now)
            now += timedelta(hours=1)
        assert len(await store.list_range(keys.HOURLY_PIXELS, 0, -1)) == HOURLY_SERIES_CAP
