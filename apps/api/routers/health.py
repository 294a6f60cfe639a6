"""
Health check endpoints.
"""

import shutil
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from config import assemblyai_key_configured, settings

router = APIRouter()


def _extractor_available() -> bool:
    if settings.MEDIA_EXTRACTOR_BACKEND == "library":
        return True
    return shutil.which(settings.YTDLP_BINARY) is not None


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns overall system health status.
    """
    health_status = {
        "ok": True,
        "status": "healthy",
        "time": datetime.now(timezone.utc).isoformat(),
        "database": "unknown",
        "assemblyai_api_key": "configured" if assemblyai_key_configured() else "missing",
        "media_extractor": settings.MEDIA_EXTRACTOR_BACKEND,
    }

    # Check database connection
    try:
        from database import engine
        from sqlalchemy import text
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"
        health_status["ok"] = False

    return health_status


@router.get("/health/ready")
async def readiness_check():
    """Readiness probe: credentials and the extractor must be in place."""
    missing = []
    if not assemblyai_key_configured():
        missing.append("ASSEMBLYAI_API_KEY")
    if not _extractor_available():
        missing.append(settings.YTDLP_BINARY)

    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Liveness probe."""
    return {"alive": True}
