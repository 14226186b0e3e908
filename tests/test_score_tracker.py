"""
Tests for the Score Tracker — placement increments and per-user ranks.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pixelstats.services.score_tracker import ScoreTracker
from pixelstats.store import keys


class TestRecordPlacement:
    async def test_increments_all_three_sets(self, store):
        tracker = ScoreTracker(store)
        await tracker.record_placement(7, "de")
        await tracker.record_placement(7, "DE")

        assert await store.get_score(keys.TOTAL_USERS, "7") == 2
        assert await store.get_score(keys.DAILY_USERS, "7") == 2
        assert await store.get_score(keys.DAILY_COUNTRIES, "de") == 2

    @pytest.mark.parametrize("user_id, cc", [(0, "de"), (-3, "de"), (5, ""), (5, "  ")])
    async def test_rejects_invalid_input(self, store, user_id, cc):
        with pytest.raises(ValueError):
            await ScoreTracker(store).record_placement(user_id, cc)
        assert await store.range_by_rank(keys.TOTAL_USERS, 0, -1) == []

    async def test_failed_write_leaves_every_set_untouched(self, store):
        await store.set_value(keys.DAILY_COUNTRIES, "not a sorted set")

        with pytest.raises(TypeError):
            await ScoreTracker(store).record_placement(7, "de")

        assert await store.get_score(keys.TOTAL_USERS, "7") is None
        assert await store.get_score(keys.DAILY_USERS, "7") is None

    async def test_store_failure_propagates(self, store):
        store.increment_scores = AsyncMock(side_effect=RedisConnectionError("down"))
        with pytest.raises(RedisConnectionError):
            await ScoreTracker(store).record_placement(1, "de")


class TestGetUserRanks:
    async def test_ranked_in_both(self, populated_store):
        ranks = await ScoreTracker(populated_store).get_user_ranks(1)
        assert ranks.total_score == 500
        assert ranks.total_rank == 1
        assert ranks.daily_score == 20
        assert ranks.daily_rank == 2

    async def test_unranked_daily(self, populated_store):
        ranks = await ScoreTracker(populated_store).get_user_ranks(2)
        assert ranks.total_score == 300
        assert ranks.total_rank == 2
        assert ranks.daily_score is None
        assert ranks.daily_rank is None

    async def test_unknown_user_is_unranked_everywhere(self, populated_store):
        ranks = await ScoreTracker(populated_store).get_user_ranks(999)
        assert ranks.total_score is None
        assert ranks.total_rank is None
        assert ranks.daily_score is None
        assert ranks.daily_rank is None
