"""
Short-Video Script Analyzer - FastAPI Backend
Main application entry point with health check and API routing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import engine, Base
import models  # noqa: F401
from routers import health, jobs, scripts
from services.job_queue import get_job_runner, recover_stalled_jobs, resume_queued_jobs
from services.media_resolver import remove_materialized_cookies

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Short-Video Script Analyzer API...")
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    try:
        recovered = await recover_stalled_jobs(settings.STALLED_JOB_MAX_AGE_MINUTES)
        if recovered:
            print(f"♻️ Marked {recovered} interrupted jobs as failed after startup.")
    except Exception as exc:
        print(f"⚠️ Stalled job recovery skipped: {exc}")
    if settings.RESUME_QUEUED_JOBS_ON_STARTUP:
        try:
            resumed = await resume_queued_jobs()
            if resumed:
                print(f"▶️ Resumed {len(resumed)} queued jobs.")
        except Exception as exc:
            print(f"⚠️ Queued job resume skipped: {exc}")
    yield
    # Shutdown
    runner = get_job_runner()
    if runner.pending:
        print(f"⏳ Waiting for {runner.pending} running jobs...")
        await runner.drain()
    remove_materialized_cookies()
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Short-Video Script Analyzer API",
    description="Transcribe short videos and score their scripts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
app.include_router(scripts.router, prefix="/scripts", tags=["Scripts"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Short-Video Script Analyzer API",
        "version": "0.1.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
