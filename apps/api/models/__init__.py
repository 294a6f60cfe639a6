"""Models package."""

from .transcript_job import TranscriptJob
from .saved_script import SavedScript
