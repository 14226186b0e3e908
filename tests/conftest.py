"""
Shared test fixtures — in-memory score store, async DB, FastAPI test client.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from pixelstats.database import Base, get_db
from pixelstats.main import app
from pixelstats.services.scheduler import StatsScheduler
from pixelstats.store import MemoryScoreStore
from pixelstats.store import keys
from tests.helpers import fill


# ── Score Store ─────────────────────────────────────────

@pytest.fixture()
def store():
    return MemoryScoreStore()


@pytest_asyncio.fixture()
async def populated_store(store):
    """Three users (user 2 inactive today) and two countries."""
    await fill(store, keys.TOTAL_USERS, {1: 500, 2: 300, 3: 100})
    await fill(store, keys.DAILY_USERS, {1: 20, 3: 50})
    await fill(store, keys.DAILY_COUNTRIES, {"de": 40, "fr": 30})
    return store


# ── Test Database (SQLite in-memory) ────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def scheduler(store, session_factory):
    return StatsScheduler(store, session_factory, hourly_window=300, rollover_hour=0)


@pytest_asyncio.fixture()
async def client(store, session_factory, scheduler):
    """FastAPI test client with the in-memory store and test DB injected."""

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.state.store = store
    app.state.scheduler = scheduler

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
