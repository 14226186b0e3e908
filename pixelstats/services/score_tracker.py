"""
Score Tracker — turns pixel placements into score increments.

Called from the placement pipeline, possibly concurrently with itself and
with the periodic jobs. Store errors propagate; whether to retry or drop
a placement is the caller's decision.
"""

import asyncio
import logging

from pixelstats.schemas import UserRanks
from pixelstats.store import ScoreStore
from pixelstats.store import keys

logger = logging.getLogger(__name__)


def _to_int(score: float | None) -> int | None:
    return None if score is None else int(score)


def _to_rank(rank: int | None) -> int | None:
    return None if rank is None else rank + 1


class ScoreTracker:
    def __init__(self, store: ScoreStore):
        self.store = store

    async def record_placement(self, user_id: int, country_code: str) -> None:
        if user_id <= 0:
            raise ValueError(f"Invalid user id: {user_id}")
        cc = (country_code or "").strip().lower()
        if not cc:
            raise ValueError("Missing country code")

        uid = str(user_id)
        await self.store.increment_scores([
            (keys.TOTAL_USERS, uid, 1),
            (keys.DAILY_USERS, uid, 1),
            (keys.DAILY_COUNTRIES, cc, 1),
        ])

    async def get_user_ranks(self, user_id: int) -> UserRanks:
        """Total/daily score and 1-based rank of one user.

        A user missing from a set is unranked there: score and rank are
        both ``None``.
        """
        uid = str(user_id)
        total_score, daily_score, total_rank, daily_rank = await asyncio.gather(
            self.store.get_score(keys.TOTAL_USERS, uid),
            self.store.get_score(keys.DAILY_USERS, uid),
            self.store.get_rank(keys.TOTAL_USERS, uid),
            self.store.get_rank(keys.DAILY_USERS, uid),
        )
        return UserRanks(
            user_id=user_id,
            total_score=_to_int(total_score),
            daily_score=_to_int(daily_score),
            total_rank=_to_rank(total_rank),
            daily_rank=_to_rank(daily_rank),
        )
