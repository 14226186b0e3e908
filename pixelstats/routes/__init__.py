"""
API Routes — placement ingest, rankings, bounded series, history, health.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from pixelstats.schemas import (
    CountryEntry,
    HealthResponse,
    OnlineCountSample,
    PlacementEvent,
    RankEntry,
    TopDailyHistory,
    UserPixels,
    UserRanks,
)
from pixelstats.services.counter_sampler import CounterSampler
from pixelstats.services.history import HistoryQuery
from pixelstats.services.score_tracker import ScoreTracker
from pixelstats.store import ScoreStore

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION = "1.0.0"
MAX_PAGE = 100


def get_store(request: Request) -> ScoreStore:
    """FastAPI dependency — the score store owned by the app."""
    return request.app.state.store


def get_history(store: ScoreStore = Depends(get_store)) -> HistoryQuery:
    return HistoryQuery(store)


# ── Health ──────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health(store: ScoreStore = Depends(get_store)):
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION,
        store=type(store).__name__,
    )


# ── Ingest ──────────────────────────────────────────────

@router.post("/placements", status_code=202, tags=["ingest"])
async def record_placement(event: PlacementEvent, store: ScoreStore = Depends(get_store)):
    await ScoreTracker(store).record_placement(event.user_id, event.country_code)
    return {"ok": True}


@router.post("/stats/online", status_code=202, tags=["ingest"])
async def record_online_count(sample: OnlineCountSample, store: ScoreStore = Depends(get_store)):
    await CounterSampler(store).record_online_user_count(sample.count)
    return {"ok": True}


# ── Rankings ────────────────────────────────────────────

@router.get("/users/{user_id}/ranks", response_model=UserRanks, tags=["ranks"])
async def user_ranks(user_id: int, store: ScoreStore = Depends(get_store)):
    if user_id <= 0:
        raise HTTPException(400, "Invalid user id")
    return await ScoreTracker(store).get_user_ranks(user_id)


@router.get("/ranks", response_model=list[RankEntry], tags=["ranks"])
async def ranks(
    daily: bool = Query(False, description="Rank by daily instead of total pixels"),
    start: int = Query(1, ge=1),
    amount: int = Query(MAX_PAGE, ge=1, le=MAX_PAGE),
    history: HistoryQuery = Depends(get_history),
):
    return await history.get_ranks(daily, start, amount)


@router.get("/ranks/countries", response_model=list[CountryEntry], tags=["ranks"])
async def country_ranks(
    start: int = Query(1, ge=1),
    amount: int = Query(MAX_PAGE, ge=1, le=MAX_PAGE),
    history: HistoryQuery = Depends(get_history),
):
    return await history.get_country_ranks(start, amount)


@router.get("/ranks/countries/hourly", response_model=list[CountryEntry], tags=["ranks"])
async def hourly_country_stats(
    start: int = Query(1, ge=1),
    amount: int = Query(MAX_PAGE, ge=1, le=MAX_PAGE),
    history: HistoryQuery = Depends(get_history),
):
    return await history.get_hourly_country_stats(start, amount)


@router.get("/ranks/prev-top", response_model=list[UserPixels], tags=["ranks"])
async def prev_top(history: HistoryQuery = Depends(get_history)):
    return await history.get_prev_top()


# ── Bounded series ──────────────────────────────────────

@router.get("/stats/online", response_model=list[int], tags=["stats"])
async def online_user_stats(history: HistoryQuery = Depends(get_history)):
    return await history.get_online_user_stats()


@router.get("/stats/hourly-pixels", response_model=list[int], tags=["stats"])
async def hourly_pixel_stats(history: HistoryQuery = Depends(get_history)):
    return await history.get_hourly_pixel_stats()


@router.get("/stats/daily-pixels", response_model=list[int], tags=["stats"])
async def daily_pixel_stats(history: HistoryQuery = Depends(get_history)):
    return await history.get_daily_pixel_stats()


# ── History ─────────────────────────────────────────────

@router.get("/history/top-daily", response_model=TopDailyHistory, tags=["history"])
async def top_daily_history(history: HistoryQuery = Depends(get_history)):
    return await history.get_top_daily_history()


@router.get("/history/countries", response_model=list[list[CountryEntry]], tags=["history"])
async def country_daily_history(history: HistoryQuery = Depends(get_history)):
    return await history.get_country_daily_history()
