"""
Redis score store.

Sorted sets for rankings, lists for the bounded series, plain strings for
timestamps. Batch reverse ranks run as a Lua script so scores and ranks
for a page come from one consistent view of the set.
"""

from __future__ import annotations

import logging
from typing import Sequence

import redis.asyncio as aioredis
from redis.exceptions import ResponseError

from pixelstats.store.base import ScoreEntry, ScoreStore

logger = logging.getLogger(__name__)

# ARGV[1] is the rank command, the rest are members
_BATCH_RANK_LUA = """
local cmd = ARGV[1]
local ret = {}
for i = 2, #ARGV do
  ret[i - 1] = redis.call(cmd, KEYS[1], ARGV[i])
end
return ret
"""


class RedisScoreStore(ScoreStore):
    def __init__(self, client: aioredis.Redis, key_prefix: str = ""):
        self.client = client
        self.key_prefix = key_prefix
        self._batch_rank = client.register_script(_BATCH_RANK_LUA)

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "") -> "RedisScoreStore":
        client = aioredis.Redis.from_url(url, decode_responses=True)
        logger.info("Redis score store at %s (prefix=%r)", url, key_prefix)
        return cls(client, key_prefix)

    def _k(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    # ── sorted sets ──

    async def increment_score(self, key, member, delta):
        return float(await self.client.zincrby(self._k(key), delta, str(member)))

    async def increment_scores(self, increments):
        async with self.client.pipeline(transaction=True) as pipe:
            for key, member, delta in increments:
                pipe.zincrby(self._k(key), delta, str(member))
            scores = await pipe.execute()
        return [float(s) for s in scores]

    async def get_score(self, key, member):
        score = await self.client.zscore(self._k(key), str(member))
        return None if score is None else float(score)

    async def get_rank(self, key, member, descending=True):
        if descending:
            return await self.client.zrevrank(self._k(key), str(member))
        return await self.client.zrank(self._k(key), str(member))

    async def range_by_rank(self, key, start, end, descending=True):
        rows = await self.client.zrange(
            self._k(key), start, end, desc=descending, withscores=True,
        )
        return [ScoreEntry(member, float(score)) for member, score in rows]

    async def batch_get_scores(self, key, members: Sequence[str]):
        if not members:
            return []
        scores = await self.client.zmscore(self._k(key), [str(m) for m in members])
        return [None if s is None else float(s) for s in scores]

    async def batch_get_ranks(self, key, members: Sequence[str], descending=True):
        if not members:
            return []
        cmd = "ZREVRANK" if descending else "ZRANK"
        ranks = await self._batch_rank(
            keys=[self._k(key)], args=[cmd, *(str(m) for m in members)],
        )
        # Lua false comes back as None; the reply can be shorter than the input
        ranks = list(ranks or [])
        ranks += [None] * (len(members) - len(ranks))
        return [None if r is None else int(r) for r in ranks]

    async def set_scores(self, key, mapping):
        if not mapping:
            return 0
        return await self.client.zadd(
            self._k(key), {str(m): float(s) for m, s in mapping.items()},
        )

    async def store_range_by_rank(self, dst, src, start, end, descending=True):
        return await self.client.zrangestore(
            self._k(dst), self._k(src), start, end, desc=descending,
        )

    # ── keys ──

    async def copy(self, src, dst, replace=True):
        return bool(await self.client.copy(self._k(src), self._k(dst), replace=replace))

    async def rename(self, src, dst):
        try:
            await self.client.rename(self._k(src), self._k(dst))
        except ResponseError as e:
            if "no such key" in str(e).lower():
                return False
            raise
        return True

    async def delete(self, *keys):
        if not keys:
            return 0
        return await self.client.delete(*(self._k(k) for k in keys))

    # ── lists ──

    async def push_front(self, key, value):
        return await self.client.lpush(self._k(key), str(value))

    async def trim(self, key, start, end):
        await self.client.ltrim(self._k(key), start, end)

    async def list_range(self, key, start, end):
        return await self.client.lrange(self._k(key), start, end)

    # ── plain values ──

    async def get_value(self, key):
        return await self.client.get(self._k(key))

    async def set_value(self, key, value):
        await self.client.set(self._k(key), str(value))

    async def close(self):
        await self.client.aclose()
