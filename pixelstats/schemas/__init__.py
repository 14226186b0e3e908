"""
pixelstats — Pydantic request/response schemas.

``None`` on a score or rank means the member is unranked in that
dimension; it is never replaced by 0.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class JobName(str, Enum):
    ROLLOVER = "rollover"
    HOURLY_COUNTRIES = "hourly_countries"
    HOURLY_PIXELS = "hourly_pixels"


class JobStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# ── Inbound ─────────────────────────────────────────────

class PlacementEvent(BaseModel):
    user_id: int = Field(..., gt=0)
    country_code: str = Field(..., min_length=1, max_length=8)

    @field_validator("country_code")
    @classmethod
    def _normalize_cc(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("country_code must not be blank")
        return v


class OnlineCountSample(BaseModel):
    count: int = Field(..., ge=0)


# ── Rankings ────────────────────────────────────────────

class UserRanks(BaseModel):
    user_id: int
    total_score: int | None = None
    daily_score: int | None = None
    total_rank: int | None = None
    daily_rank: int | None = None


class RankEntry(BaseModel):
    user_id: int
    total_score: int | None = None
    total_rank: int | None = None
    daily_score: int | None = None
    daily_rank: int | None = None


class CountryEntry(BaseModel):
    country_code: str
    pixels: int


class UserPixels(BaseModel):
    user_id: int
    pixels: int


class TopDailyHistory(BaseModel):
    # one list per archived day, most recent day first
    stats: list[list[UserPixels]]
    users: list[int]


# ── Jobs ────────────────────────────────────────────────

class RolloverResult(BaseModel):
    date_key: str
    purged_date_key: str
    prev_top_count: int = 0
    users_archived: bool = False
    countries_archived: bool = False
    daily_pixels: int = 0


class JobRunResponse(BaseModel):
    id: str
    job: str
    run_key: str
    status: JobStatus
    detail: dict | None = None
    error: str | None = None
    started_at: datetime | str | None = None
    finished_at: datetime | str | None = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    store: str
