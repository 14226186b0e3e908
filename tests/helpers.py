"""Small helpers shared by the test modules."""

from datetime import datetime, timezone


async def fill(store, key: str, scores: dict) -> None:
    """Load a sorted set with fixed scores."""
    await store.set_scores(key, {str(m): s for m, s in scores.items()})


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
