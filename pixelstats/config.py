"""
pixelstats — Configuration via environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """All settings read from env / .env file."""

    # Database (job-run ledger)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./pixelstats.db",
        description="Async SQLAlchemy DB URL",
    )

    # Score store
    store_backend: str = Field(
        default="redis",
        description="Score store backend: 'redis' or 'memory' (single process, dev only)",
    )
    redis_url: str = Field(default="redis://localhost:6379/0")
    key_prefix: str = Field(default="", description="Namespace prepended to every store key")

    # Scheduler
    scheduler_enabled: bool = Field(
        default=False,
        description="Run the hourly/daily jobs in-process instead of via an external cron",
    )
    hourly_country_window: int = Field(
        default=300, description="How many top countries the hourly aggregator looks at"
    )
    online_poll_interval: int = Field(
        default=900, description="Seconds between online-user samples"
    )
    rollover_hour: int = Field(
        default=0, ge=0, le=23, description="UTC hour after which the daily rollover may run"
    )
    rollover_check_interval: int = Field(
        default=300, description="Seconds between daily rollover checks"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "PIXELSTATS_",
        "extra": "ignore",
    }


settings = Settings()
