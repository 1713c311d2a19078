"""
LMS Admin API - Main Application Entry Point

Initializes the FastAPI application:
- Database and Redis connections
- Background job scheduler (document cleanup retries)
- CORS middleware
- API routing
- Health check and job debug endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

import lms.models  # noqa: F401 - registers every model before mappers configure
from lms.api import api_router
from lms.core import redis as redis_core
from lms.core.config import settings
from lms.core.database import async_session_maker, close_db, init_db
from lms.core.redis import close_redis, init_redis
from lms.core.scheduler import (
    get_scheduler,
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from lms.modules.qualifications.jobs import register_qualification_jobs

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Start and stop Redis, the database pool and the scheduler."""
    print(f"Starting LMS Admin API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    try:
        register_qualification_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield

    print("Shutting down LMS Admin API...")
    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="LMS Admin API",
    description="Learning platform administration: accounts, qualifications and audit trail",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness: database reachable; Redis and the scheduler are reported but optional."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail={"database": "unavailable", "message": str(e)},
        ) from e

    redis_state = "connected" if redis_core.get_redis() is not None else "unavailable"
    scheduler = get_scheduler()
    scheduler_state = "running" if scheduler is not None and scheduler.running else "stopped"
    return {
        "status": "ready",
        "database": "connected",
        "redis": redis_state,
        "scheduler": scheduler_state,
    }


# ============================================
# Background Job Debug Endpoints
# ============================================
# Jobs run on schedule; these endpoints allow manual runs in development.


@app.get("/debug/jobs", tags=["Debug"], include_in_schema=settings.is_development)
async def list_jobs():
    if not settings.is_development:
        raise HTTPException(status_code=404)
    return {"jobs": list_registered_jobs()}


@app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"], include_in_schema=settings.is_development)
async def trigger_job(job_id: str):
    """
    Run a background job now. Available jobs:
        - qualifications_retry_document_cleanup
    """
    if not settings.is_development:
        raise HTTPException(status_code=404)
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/debug/jobs/{job_id}/pause", tags=["Debug"], include_in_schema=settings.is_development)
async def pause_job_endpoint(job_id: str):
    if not settings.is_development:
        raise HTTPException(status_code=404)
    return {"job_id": job_id, "paused": pause_job(job_id)}


@app.post("/debug/jobs/{job_id}/resume", tags=["Debug"], include_in_schema=settings.is_development)
async def resume_job_endpoint(job_id: str):
    if not settings.is_development:
        raise HTTPException(status_code=404)
    return {"job_id": job_id, "resumed": resume_job(job_id)}
