"""
Admin routes — trigger scheduled jobs by hand (or from an external cron)
and inspect the job ledger.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pixelstats.database import get_db
from pixelstats.schemas import JobName, JobRunResponse
from pixelstats.services.job_log import JobAlreadyRan, list_runs
from pixelstats.services.scheduler import StatsScheduler

logger = logging.getLogger(__name__)
admin_router = APIRouter(prefix="/admin", tags=["admin"])


def get_scheduler(request: Request) -> StatsScheduler:
    return request.app.state.scheduler


@admin_router.post("/jobs/{job}")
async def trigger_job(job: JobName, scheduler: StatsScheduler = Depends(get_scheduler)):
    """Run one job for the current period. 409 if that period already ran."""
    try:
        result = await scheduler.run(job)
    except JobAlreadyRan as e:
        raise HTTPException(409, str(e))
    logger.info("Job %s triggered via admin API", job.value)
    if hasattr(result, "model_dump"):
        result = result.model_dump()
    return {"job": job.value, "result": result}


@admin_router.get("/jobs", response_model=list[JobRunResponse])
async def job_runs(
    job: JobName | None = Query(None, description="Filter by job"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    runs = await list_runs(db, job.value if job else None, limit)
    return [JobRunResponse.model_validate(r) for r in runs]
