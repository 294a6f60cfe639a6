"""
Transcript analysis models and schemas.
"""

from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Serialized with camelCase keys, still constructible by field name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TranscriptMetrics(_CamelModel):
    length_chars: int = 0
    length_words: int = 0
    sentence_count: int = 0
    avg_words_per_sentence: float = 0.0
    has_numbers: bool = False
    number_count: int = 0
    exclamation_count: int = 0
    question_count: int = 0
    power_words: List[str] = []
    risky_claims: List[str] = []
    cta_lines: List[str] = []
    sentiment: float = 0.0


class ScriptStructure(_CamelModel):
    prehook: str = ""       # First line of the transcript
    cta: str = ""           # Last call-to-action line
    has_risky_claims: bool = False


class AnalysisResult(_CamelModel):
    """Heuristic read of a transcript. Pure function of the text."""
    metrics: TranscriptMetrics
    hook_score: float  # 0.0 - 1.0
    structure: ScriptStructure

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)
