from pixelstats.store.base import ScoreEntry, ScoreStore, sum_scores  # noqa: F401
from pixelstats.store.memory import MemoryScoreStore  # noqa: F401


def create_store(backend: str, redis_url: str = "", key_prefix: str = "") -> ScoreStore:
    """Build the configured score store backend."""
    if backend == "memory":
        return MemoryScoreStore()
    if backend == "redis":
        from pixelstats.store.redis_store import RedisScoreStore

        return RedisScoreStore.from_url(redis_url, key_prefix=key_prefix)
    raise ValueError(f"Unknown store backend: {backend!r}")
