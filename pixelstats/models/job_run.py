"""
pixelstats — Job run ledger model.

One row per (job, run_key). The daily rollover is keyed by the date it
archives, hourly jobs by ``YYYYMMDDHH``, so a second trigger for the same
period finds the existing row and is refused.
"""

import uuid

from sqlalchemy import Column, String, Text, DateTime, JSON, func, Index

from pixelstats.database import Base


class JobRun(Base):
    """Execution record of a scheduled stats job."""
    __tablename__ = "job_runs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # "rollover", "hourly_countries", "hourly_pixels"
    job = Column(String(30), nullable=False)

    # Period the run covers, e.g. "20260114" or "2026011405"
    run_key = Column(String(10), nullable=False)

    # "running" → "success" | "failed"
    status = Column(String(10), nullable=False, default="running")

    detail = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), server_default=func.now())
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_job_runs_job_key", "job", "run_key", unique=True),
    )

    def __repr__(self):
        return f"<JobRun {self.job}/{self.run_key} — {self.status}>"
