"""
FastAPI Application — entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from pixelstats.config import settings
from pixelstats.database import async_session, close_db, init_db
from pixelstats.routes import VERSION, router
from pixelstats.routes.admin import admin_router
from pixelstats.services.scheduler import StatsScheduler
from pixelstats.store import create_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hook."""
    logger.info("🚀 Starting pixelstats API v%s", VERSION)
    await init_db()
    logger.info("✅ Database ready")

    store = create_store(settings.store_backend, settings.redis_url, settings.key_prefix)
    scheduler = StatsScheduler(store, async_session)
    app.state.store = store
    app.state.scheduler = scheduler

    if settings.scheduler_enabled:
        try:
            await scheduler.catch_up_if_needed()
        except Exception as e:
            logger.error("Rollover catch-up failed: %s", e)
        scheduler.start()
    else:
        logger.info("ℹ️ In-process scheduler disabled — jobs run via /api/v1/admin/jobs")

    yield

    # Shutdown
    await scheduler.stop()
    await store.close()
    await close_db()
    logger.info("👋 Shutdown complete")


app = FastAPI(
    title="pixelstats API",
    description="Pixel placement leaderboards and activity statistics.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RedisError)
async def store_error_handler(request: Request, exc: RedisError):
    logger.error("Score store error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Score store unavailable"})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "pixelstats API",
        "version": VERSION,
        "docs": "/docs",
    }
