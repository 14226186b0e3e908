"""In-memory score store.

Single-process stand-in for Redis used in development and tests. Follows
Redis ordering rules: ties on score are ordered by member, and reversed
as a whole for descending queries.
"""

from __future__ import annotations

import copy as _copy
from typing import Sequence

from pixelstats.store.base import ScoreEntry, ScoreStore


def _clip(length: int, start: int, end: int) -> tuple[int, int] | None:
    """Resolve an inclusive Redis-style index range against *length*."""
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = length + end
    end = min(end, length - 1)
    if start > end or start >= length:
        return None
    return start, end


class MemoryScoreStore(ScoreStore):
    def __init__(self):
        self._data: dict[str, dict[str, float] | list[str] | str] = {}

    # ── helpers ──

    def _zset(self, key: str, create: bool = False) -> dict[str, float]:
        val = self._data.get(key)
        if val is None:
            if not create:
                return {}
            val = self._data[key] = {}
        if not isinstance(val, dict):
            raise TypeError(f"{key!r} does not hold a sorted set")
        return val

    def _list(self, key: str, create: bool = False) -> list[str]:
        val = self._data.get(key)
        if val is None:
            if not create:
                return []
            val = self._data[key] = []
        if not isinstance(val, list):
            raise TypeError(f"{key!r} does not hold a list")
        return val

    def _ordered(self, key: str, descending: bool) -> list[ScoreEntry]:
        entries = [ScoreEntry(m, s) for m, s in self._zset(key).items()]
        entries.sort(key=lambda e: (e.score, e.member), reverse=descending)
        return entries

    def _drop_if_empty(self, key: str) -> None:
        val = self._data.get(key)
        if val is not None and not isinstance(val, str) and not val:
            del self._data[key]

    def exists(self, key: str) -> bool:
        return key in self._data

    # ── sorted sets ──

    async def increment_score(self, key, member, delta):
        zset = self._zset(key, create=True)
        zset[str(member)] = zset.get(str(member), 0.0) + float(delta)
        return zset[str(member)]

    async def increment_scores(self, increments):
        # check every key before touching any of them
        for key, _, _ in increments:
            self._zset(key)
        return [await self.increment_score(k, m, d) for k, m, d in increments]

    async def get_score(self, key, member):
        return self._zset(key).get(str(member))

    async def get_rank(self, key, member, descending=True):
        for i, entry in enumerate(self._ordered(key, descending)):
            if entry.member == str(member):
                return i
        return None

    async def range_by_rank(self, key, start, end, descending=True):
        ordered = self._ordered(key, descending)
        bounds = _clip(len(ordered), start, end)
        if bounds is None:
            return []
        return ordered[bounds[0]:bounds[1] + 1]

    async def batch_get_scores(self, key, members: Sequence[str]):
        zset = self._zset(key)
        return [zset.get(str(m)) for m in members]

    async def batch_get_ranks(self, key, members: Sequence[str], descending=True):
        positions = {e.member: i for i, e in enumerate(self._ordered(key, descending))}
        return [positions.get(str(m)) for m in members]

    async def set_scores(self, key, mapping):
        zset = self._zset(key, create=True)
        added = sum(1 for m in mapping if str(m) not in zset)
        for member, score in mapping.items():
            zset[str(member)] = float(score)
        self._drop_if_empty(key)
        return added

    async def store_range_by_rank(self, dst, src, start, end, descending=True):
        entries = await self.range_by_rank(src, start, end, descending)
        self._data.pop(dst, None)
        if entries:
            self._data[dst] = {e.member: e.score for e in entries}
        return len(entries)

    # ── keys ──

    async def copy(self, src, dst, replace=True):
        if src not in self._data:
            return False
        if dst in self._data and not replace:
            return False
        self._data[dst] = _copy.deepcopy(self._data[src])
        return True

    async def rename(self, src, dst):
        if src not in self._data:
            return False
        self._data[dst] = self._data.pop(src)
        return True

    async def delete(self, *keys):
        return sum(1 for k in keys if self._data.pop(k, None) is not None)

    # ── lists ──

    async def push_front(self, key, value):
        lst = self._list(key, create=True)
        lst.insert(0, str(value))
        return len(lst)

    async def trim(self, key, start, end):
        lst = self._list(key)
        bounds = _clip(len(lst), start, end)
        if bounds is None:
            self._data.pop(key, None)
            return
        self._data[key] = lst[bounds[0]:bounds[1] + 1]

    async def list_range(self, key, start, end):
        lst = self._list(key)
        bounds = _clip(len(lst), start, end)
        if bounds is None:
            return []
        return lst[bounds[0]:bounds[1] + 1]

    # ── plain values ──

    async def get_value(self, key):
        val = self._data.get(key)
        if val is not None and not isinstance(val, str):
            raise TypeError(f"{key!r} does not hold a string")
        return val

    async def set_value(self, key, value):
        self._data[key] = str(value)
