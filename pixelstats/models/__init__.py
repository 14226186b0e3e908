from pixelstats.models.job_run import JobRun  # noqa: F401
