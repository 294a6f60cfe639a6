"""Transcript job model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, JSON, String, Text

from database import Base

QUEUED = "queued"
RESOLVING = "resolving"
UPLOADING = "uploading"
TRANSCRIBING = "transcribing"
COMPLETED = "completed"
ERROR = "error"

IN_PROGRESS_STATUSES = (RESOLVING, UPLOADING, TRANSCRIBING)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TranscriptJob(Base):
    """One submitted video moving through resolve -> transcribe -> analyze."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    source_url = Column(String, nullable=False)
    status = Column(String, nullable=False, default=QUEUED, index=True)
    error = Column(Text, nullable=True)  # set only when status == error
    transcript = Column(Text, nullable=True)
    analysis_json = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
