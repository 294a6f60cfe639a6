"""Saved script model."""

import uuid

from sqlalchemy import Column, DateTime, JSON, String, Text

from database import Base
from models.transcript_job import utcnow


class SavedScript(Base):
    """User-curated copy of a transcript and its analysis."""

    __tablename__ = "saved_scripts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False, default="Untitled")
    source_url = Column(String, nullable=False, default="")
    transcript = Column(Text, nullable=False)
    analysis_json = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
