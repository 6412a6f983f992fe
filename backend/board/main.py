"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from sqlalchemy import func, select

from board.config import get_settings
from board.models import Base, Opportunity
from board.models.base import engine, AsyncSessionLocal
from board.api.v1 import router as api_v1_router
from board.services.jobs import CHECK_EXPIRED

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting %s...", settings.app_name)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")
    yield
    logger.info("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Community opportunities board: links enriched with AI-extracted details",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.app_name}


async def _check_database() -> dict:
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(func.count()).select_from(Opportunity).where(Opportunity.expires_at > datetime.now(timezone.utc))
        )
        return {"ok": True, "open_opportunities": result.scalar()}


async def _check_redis() -> dict:
    client = redis.from_url(settings.redis_url, socket_timeout=5)
    try:
        channels = await client.scard(settings.opportunity_channels_key)
    finally:
        await client.aclose()
    # No channels means Slack posts are never picked up.
    return {"ok": channels > 0, "opportunity_channels": channels}


def _check_workers() -> dict:
    from board.tasks.celery_app import celery_app

    registered = celery_app.control.inspect(timeout=5).registered() or {}
    workers = [name for name, tasks in registered.items() if CHECK_EXPIRED in tasks]
    return {"ok": bool(workers), "workers": workers}


@app.get("/health/detailed")
async def detailed_health_check():
    """Database, the Redis channel set, and workers that can run expiration checks."""
    checks = {}
    for name, check in (("database", _check_database), ("redis", _check_redis)):
        try:
            checks[name] = await check()
        except Exception as e:
            checks[name] = {"ok": False, "message": str(e)}

    try:
        checks["celery_workers"] = await asyncio.to_thread(_check_workers)
    except Exception as e:
        checks["celery_workers"] = {"ok": False, "message": str(e)}

    return {
        "status": "healthy" if all(check["ok"] for check in checks.values()) else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
