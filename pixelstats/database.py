"""
pixelstats — Async SQLAlchemy setup for the job-run ledger.

Scores never touch this database; it only records which scheduled job
ran for which period.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from pixelstats.config import settings


def _engine_options(url: str) -> dict:
    if "sqlite" in url:
        return {}
    return {
        "pool_size": 2,
        "max_overflow": 3,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


engine = create_async_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """FastAPI dependency — yields an async session."""
    async with async_session() as session:
        yield session


async def init_db() -> None:
    """Create the ledger tables if missing."""
    import pixelstats.models  # noqa: F401  (registers the tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
