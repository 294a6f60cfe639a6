"""
Word lists used by the transcript analyzer.

The lists are data, not logic: a JSON file with any of the keys below can
replace individual lists without touching the analyzer.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import FrozenSet, Optional

logger = logging.getLogger(__name__)

VOCABULARY_KEYS = ("power_words", "risky_words", "cta_words", "positive_words", "negative_words")


@dataclass(frozen=True)
class Vocabulary:
    power_words: FrozenSet[str]
    risky_words: FrozenSet[str]
    cta_words: FrozenSet[str]
    positive_words: FrozenSet[str]
    negative_words: FrozenSet[str]


DEFAULT_VOCABULARY = Vocabulary(
    power_words=frozenset({
        "shock", "insane", "secret", "proof", "hack",
        "guarantee", "science", "doctor", "study",
    }),
    risky_words=frozenset({"cure", "guarantee", "instant", "permanent", "miracle"}),
    cta_words=frozenset({"link", "buy", "shop", "tap", "order", "try", "today", "now", "follow"}),
    positive_words=frozenset({
        "amazing", "awesome", "best", "easy", "love", "great", "happy",
        "perfect", "win", "works", "beautiful", "incredible", "favorite", "good",
    }),
    negative_words=frozenset({
        "bad", "worst", "hate", "fail", "problem", "pain", "scam",
        "broken", "terrible", "awful", "never", "sad", "ugly", "waste",
    }),
)


def load_vocabulary(path: Optional[str]) -> Vocabulary:
    """
    Load a vocabulary override from JSON.

    Keys that are missing from the file keep their default list. An empty path
    returns the defaults.
    """
    if not path:
        return DEFAULT_VOCABULARY

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Vocabulary file {path} must contain a JSON object")

    overrides = {}
    for key in VOCABULARY_KEYS:
        if key not in raw:
            continue
        values = raw[key]
        if not isinstance(values, list):
            raise ValueError(f"Vocabulary key {key!r} must be a list of words")
        overrides[key] = frozenset(str(word).strip().casefold() for word in values if str(word).strip())

    unknown = set(raw) - set(VOCABULARY_KEYS)
    if unknown:
        logger.warning("Ignoring unknown vocabulary keys: %s", ", ".join(sorted(unknown)))
    return replace(DEFAULT_VOCABULARY, **overrides)
