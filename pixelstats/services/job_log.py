"""
Job ledger — records every scheduled stats job in the database.

``run_job`` wraps a job coroutine: it claims the ``(job, run_key)`` row,
runs the job and records the outcome. A period that already succeeded,
or is still running, is refused with ``JobAlreadyRan``. A failed run may
be retried in place. A ``running`` row older than ``STALE_RUNNING_AFTER``
is treated as abandoned (process died mid-job) and may be claimed again.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pixelstats.models.job_run import JobRun
from pixelstats.schemas import JobStatus
from pixelstats.services.dates import as_utc, utc_now

logger = logging.getLogger(__name__)

STALE_RUNNING_AFTER = timedelta(hours=1)


class JobAlreadyRan(Exception):
    def __init__(self, job: str, run_key: str, status: str):
        self.job = job
        self.run_key = run_key
        self.status = status
        super().__init__(f"{job}/{run_key} already {status}")


def _to_detail(result: Any) -> dict | None:
    if result is None:
        return None
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, dict):
        return result
    return {"result": result}


def _is_abandoned(row: JobRun) -> bool:
    if row.status != JobStatus.RUNNING.value or row.started_at is None:
        return False
    return as_utc(row.started_at) < utc_now() - STALE_RUNNING_AFTER


async def _find(session: AsyncSession, job: str, run_key: str) -> JobRun | None:
    result = await session.execute(
        select(JobRun).where(JobRun.job == job, JobRun.run_key == run_key)
    )
    return result.scalar_one_or_none()


async def run_job(
    session_factory: async_sessionmaker,
    job: str,
    run_key: str,
    fn: Callable[[], Awaitable[Any]],
) -> Any:
    """Run *fn* once for ``(job, run_key)`` and record the outcome.

    Errors raised by *fn* are recorded on the row and re-raised.
    """
    async with session_factory() as session:
        row = await _find(session, job, run_key)
        if row is not None and row.status != JobStatus.FAILED.value and not _is_abandoned(row):
            raise JobAlreadyRan(job, run_key, row.status)

        if row is None:
            row = JobRun(job=job, run_key=run_key)
            session.add(row)
        elif row.status == JobStatus.RUNNING.value:
            logger.warning("Reclaiming abandoned run %s/%s", job, run_key)
        row.status = JobStatus.RUNNING.value
        row.error = None
        row.detail = None
        row.started_at = utc_now()
        row.finished_at = None

        try:
            await session.commit()
        except IntegrityError:
            # another worker claimed the same period first
            await session.rollback()
            raise JobAlreadyRan(job, run_key, JobStatus.RUNNING.value)

        try:
            result = await fn()
        except Exception as e:
            row.status = JobStatus.FAILED.value
            row.error = str(e) or type(e).__name__
            row.finished_at = utc_now()
            await session.commit()
            logger.error("❌ Job %s/%s failed: %s", job, run_key, e)
            raise

        row.status = JobStatus.SUCCESS.value
        row.detail = _to_detail(result)
        row.finished_at = utc_now()
        await session.commit()
        logger.info("✅ Job %s/%s done", job, run_key)
        return result


async def has_succeeded(session_factory: async_sessionmaker, job: str, run_key: str) -> bool:
    async with session_factory() as session:
        row = await _find(session, job, run_key)
        return row is not None and row.status == JobStatus.SUCCESS.value


async def last_success(session_factory: async_sessionmaker, job: str) -> JobRun | None:
    async with session_factory() as session:
        result = await session.execute(
            select(JobRun)
            .where(JobRun.job == job, JobRun.status == JobStatus.SUCCESS.value)
            .order_by(JobRun.run_key.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


async def list_runs(session: AsyncSession, job: str | None = None, limit: int = 50) -> list[JobRun]:
    """Most recent runs first."""
    stmt = select(JobRun).order_by(JobRun.started_at.desc()).limit(limit)
    if job:
        stmt = stmt.where(JobRun.job == job)
    result = await session.execute(stmt)
    return list(result.scalars().all())
