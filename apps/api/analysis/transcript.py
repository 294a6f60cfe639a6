"""
Heuristic transcript analysis: hook strength, hype vocabulary, calls to action.
"""

import math
import re
from typing import List, Optional

from .models import AnalysisResult, ScriptStructure, TranscriptMetrics
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

WORD_RE = re.compile(r"\w+")
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
DIGIT_RE = re.compile(r"\d")

# Hook signal weights (sum to 1.0)
HOOK_POWER_WORD = 0.3
HOOK_NUMBER = 0.2
HOOK_FIRST_LINE = 0.3
HOOK_LENGTH = 0.2

PREHOOK_MAX_CHARS = 150
IDEAL_MIN_WORDS = 30
IDEAL_MAX_WORDS = 220


def _first_line(text: str) -> str:
    lines = text.splitlines()
    return lines[0].strip() if lines else ""


def _count_sentences(text: str) -> int:
    return sum(1 for segment in SENTENCE_SPLIT_RE.split(text.strip()) if segment.strip())


def _cta_lines(text: str, cta_words) -> List[str]:
    matched = []
    for line in text.splitlines():
        tokens = {token.casefold() for token in WORD_RE.findall(line)}
        if tokens & cta_words:
            matched.append(line.strip())
    return matched


def _sentiment(tokens: List[str], vocabulary: Vocabulary) -> float:
    if not tokens:
        return 0.0
    score = 0
    for token in tokens:
        if token in vocabulary.positive_words:
            score += 1
        elif token in vocabulary.negative_words:
            score -= 1
    return round(score / math.sqrt(len(tokens)), 2)


def hook_score(
    *,
    has_power_word: bool,
    has_number: bool,
    first_line: str,
    word_count: int,
) -> float:
    """Sum of the four weighted hook signals."""
    score = 0.0
    if has_power_word:
        score += HOOK_POWER_WORD
    if has_number:
        score += HOOK_NUMBER
    if 1 <= len(first_line) <= PREHOOK_MAX_CHARS:
        score += HOOK_FIRST_LINE
    if IDEAL_MIN_WORDS <= word_count <= IDEAL_MAX_WORDS:
        score += HOOK_LENGTH
    return round(score, 2)


def analyze(text: Optional[str], vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> AnalysisResult:
    """
    Analyze a transcript.

    Never raises: ``None`` or empty text produces zeroed metrics and a hook
    score of 0.0.
    """
    text = text or ""
    tokens = WORD_RE.findall(text)
    folded = [token.casefold() for token in tokens]
    word_count = len(tokens)
    sentence_count = _count_sentences(text)

    power_words = [token for token in folded if token in vocabulary.power_words]
    risky_claims = [token for token in folded if token in vocabulary.risky_words]
    cta_lines = _cta_lines(text, vocabulary.cta_words)
    number_count = sum(1 for token in tokens if DIGIT_RE.search(token))
    first_line = _first_line(text)

    metrics = TranscriptMetrics(
        length_chars=len(text),
        length_words=word_count,
        sentence_count=sentence_count,
        avg_words_per_sentence=round(word_count / max(sentence_count, 1), 2),
        has_numbers=number_count > 0,
        number_count=number_count,
        exclamation_count=text.count("!"),
        question_count=text.count("?"),
        power_words=power_words,
        risky_claims=risky_claims,
        cta_lines=cta_lines,
        sentiment=_sentiment(folded, vocabulary),
    )
    return AnalysisResult(
        metrics=metrics,
        hook_score=hook_score(
            has_power_word=bool(power_words),
            has_number=number_count > 0,
            first_line=first_line,
            word_count=word_count,
        ),
        structure=ScriptStructure(
            prehook=first_line,
            cta=cta_lines[-1] if cta_lines else "",
            has_risky_claims=bool(risky_claims),
        ),
    )
