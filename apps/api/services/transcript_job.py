"""Transcript job processing: resolve media, transcribe, analyze, persist."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analysis.transcript import analyze
from analysis.vocabulary import DEFAULT_VOCABULARY, Vocabulary, load_vocabulary
from database import async_session_maker
from models.transcript_job import (
    COMPLETED,
    ERROR,
    QUEUED,
    RESOLVING,
    TRANSCRIBING,
    UPLOADING,
    TranscriptJob,
    utcnow,
)
from services.errors import PipelineError
from services.media_resolver import MediaResolver, build_media_resolver
from services.transcription import AssemblyAITranscriber, build_transcriber

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 1000


def error_message(exc: BaseException) -> str:
    message = str(exc).strip() or type(exc).__name__
    return message[:MAX_ERROR_CHARS]


class JobOrchestrator:
    """
    Drives one job from ``queued`` to ``completed`` or ``error``.

    Every transition is a single UPDATE keyed by job id. Runs for a job that is
    not ``queued`` any more are no-ops, so a duplicate trigger never re-enters
    the pipeline.
    """

    def __init__(
        self,
        *,
        resolver: MediaResolver,
        transcriber: AssemblyAITranscriber,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.resolver = resolver
        self.transcriber = transcriber
        self.session_maker = session_maker or async_session_maker
        self.vocabulary = vocabulary

    async def _claim(self, job_id: str) -> Optional[str]:
        """Atomically move ``queued -> resolving``; return the source URL if claimed."""
        async with self.session_maker() as db:
            result = await db.execute(
                update(TranscriptJob)
                .where(TranscriptJob.id == job_id, TranscriptJob.status == QUEUED)
                .values(
                    status=RESOLVING,
                    error=None,
                    transcript=None,
                    analysis_json=None,
                    updated_at=utcnow(),
                )
            )
            await db.commit()
            if result.rowcount != 1:
                return None
            row = await db.execute(select(TranscriptJob.source_url).where(TranscriptJob.id == job_id))
            return row.scalar_one()

    async def _set_status(
        self,
        job_id: str,
        status: str,
        *,
        error: Optional[str] = None,
        transcript: Optional[str] = None,
        analysis: Optional[Dict[str, Any]] = None,
    ) -> None:
        async with self.session_maker() as db:
            await db.execute(
                update(TranscriptJob)
                .where(TranscriptJob.id == job_id)
                .values(
                    status=status,
                    error=error,
                    transcript=transcript,
                    analysis_json=analysis,
                    updated_at=utcnow(),
                )
            )
            await db.commit()
        logger.debug("Job %s -> %s", job_id, status)

    async def run(self, job_id: str) -> Optional[str]:
        """
        Execute the job. Returns the terminal status, or ``None`` when the job
        was unknown or already past ``queued``. Never raises.
        """
        try:
            source_url = await self._claim(job_id)
        except Exception:
            logger.exception("Could not claim transcript job %s", job_id)
            return None
        if source_url is None:
            logger.info("Transcript job %s is not queued; skipping", job_id)
            return None

        try:
            media = await self.resolver.resolve(source_url)
            if media.is_bytes:
                await self._set_status(job_id, UPLOADING)
                audio_url = await self.transcriber.upload(media.data or b"")
            else:
                audio_url = media.url

            await self._set_status(job_id, TRANSCRIBING)
            transcript = await self.transcriber.transcribe_url(audio_url)

            analysis = analyze(transcript, self.vocabulary)
            await self._set_status(
                job_id,
                COMPLETED,
                transcript=transcript,
                analysis=analysis.to_json(),
            )
            logger.info("Transcript job %s completed", job_id)
            return COMPLETED
        except Exception as exc:
            code = exc.code if isinstance(exc, PipelineError) else "unexpected_error"
            logger.exception("Transcript job %s failed [%s]: %s", job_id, code, exc)
            try:
                await self._set_status(job_id, ERROR, error=error_message(exc))
            except Exception:
                logger.exception("Could not record failure for transcript job %s", job_id)
            return ERROR


def build_orchestrator(settings) -> JobOrchestrator:
    return JobOrchestrator(
        resolver=build_media_resolver(settings),
        transcriber=build_transcriber(settings),
        vocabulary=load_vocabulary(settings.ANALYZER_VOCABULARY_PATH),
    )
