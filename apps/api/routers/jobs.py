"""Transcript job router."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.transcript_job import ERROR, QUEUED, TranscriptJob, utcnow
from services.job_queue import enqueue_transcript_job

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateJobRequest(BaseModel):
    source_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sourceUrl", "tiktokUrl", "source_url"),
    )


class CreateJobResponse(BaseModel):
    id: str
    status: str


class JobResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    source_url: str
    status: str
    error: Optional[str] = None
    transcript: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _serialize_job(job: TranscriptJob) -> JobResponse:
    return JobResponse(
        id=job.id,
        source_url=job.source_url,
        status=job.status,
        error=job.error,
        transcript=job.transcript,
        analysis=job.analysis_json,
        created_at=job.created_at.isoformat() if job.created_at else None,
        updated_at=job.updated_at.isoformat() if job.updated_at else None,
    )


@router.post("", response_model=CreateJobResponse)
async def create_job(request: CreateJobRequest, db: AsyncSession = Depends(get_db)):
    """Create a transcript job and start processing it in the background."""
    source_url = str(request.source_url or "").strip()
    if not source_url:
        raise HTTPException(status_code=400, detail="sourceUrl required")

    job = TranscriptJob(source_url=source_url, status=QUEUED)
    db.add(job)
    await db.commit()
    await db.refresh(job)

    try:
        enqueue_transcript_job(job.id)
    except Exception as exc:
        logger.exception("Could not schedule transcript job %s", job.id)
        job.status = ERROR
        job.error = "Job runner unavailable. Submit the URL again."
        job.updated_at = utcnow()
        await db.commit()
        raise HTTPException(status_code=503, detail="Job runner unavailable. Retry shortly.") from exc

    return CreateJobResponse(id=job.id, status=QUEUED)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, db: AsyncSession = Depends(get_db)):
    """Current status and, once completed, the transcript and analysis."""
    result = await db.execute(select(TranscriptJob).where(TranscriptJob.id == job_id))
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return _serialize_job(job)
