"""
Score store contract.

The engine talks to its sorted-set / key-value backend only through this
interface. Every method is one round-trip against the backend and is
atomic there. Ranks are 0-based at this layer, ranges are 0-based and
inclusive with ``-1`` meaning "last element".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple, Sequence


class ScoreEntry(NamedTuple):
    member: str
    score: float


class ScoreStore(ABC):
    """Abstract async score store."""

    # ── sorted sets ──

    @abstractmethod
    async def increment_score(self, key: str, member: str, delta: float) -> float:
        """Add *delta* to *member*'s score (creating it at 0) and return the new score."""

    @abstractmethod
    async def increment_scores(
        self, increments: Sequence[tuple[str, str, float]],
    ) -> list[float]:
        """Apply several ``(key, member, delta)`` increments all or nothing."""

    @abstractmethod
    async def get_score(self, key: str, member: str) -> float | None:
        ...

    @abstractmethod
    async def get_rank(self, key: str, member: str, descending: bool = True) -> int | None:
        ...

    @abstractmethod
    async def range_by_rank(
        self, key: str, start: int, end: int, descending: bool = True,
    ) -> list[ScoreEntry]:
        ...

    @abstractmethod
    async def batch_get_scores(self, key: str, members: Sequence[str]) -> list[float | None]:
        """Scores aligned to *members*; absent members are ``None``."""

    @abstractmethod
    async def batch_get_ranks(
        self, key: str, members: Sequence[str], descending: bool = True,
    ) -> list[int | None]:
        """Ranks aligned to *members*, computed server side in one call."""

    @abstractmethod
    async def set_scores(self, key: str, mapping: dict[str, float]) -> int:
        """Set the scores of many members at once."""

    @abstractmethod
    async def store_range_by_rank(
        self, dst: str, src: str, start: int, end: int, descending: bool = True,
    ) -> int:
        """Replace *dst* with the given rank range of *src*; returns its size."""

    # ── keys ──

    @abstractmethod
    async def copy(self, src: str, dst: str, replace: bool = True) -> bool:
        ...

    @abstractmethod
    async def rename(self, src: str, dst: str) -> bool:
        """Atomically move *src* to *dst*.

        Returns False, leaving *dst* untouched, when *src* does not exist.
        """

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        ...

    # ── lists ──

    @abstractmethod
    async def push_front(self, key: str, value: str) -> int:
        ...

    @abstractmethod
    async def trim(self, key: str, start: int, end: int) -> None:
        ...

    @abstractmethod
    async def list_range(self, key: str, start: int, end: int) -> list[str]:
        ...

    # ── plain values ──

    @abstractmethod
    async def get_value(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set_value(self, key: str, value: str) -> None:
        ...

    async def close(self) -> None:
        """Release backend resources."""


async def sum_scores(store: ScoreStore, key: str) -> int:
    """Sum of every score in a sorted set.

    Reads the whole set; fine for the country sets, do not use it on the
    user sets.
    """
    entries = await store.range_by_rank(key, 0, -1)
    return int(sum(e.score for e in entries))
