"""Heuristic positivity classifier for survey answers.

Two entry points share the same signal extraction:

``classify`` / ``is_positive``
    Two-valued (positive/negative). Drives the branching between questions.

``analyze_sentiment``
    Three-valued (positive/neutral/negative). Used by analytics to bucket
    stored free-text answers. Sentiment is never stored; it is recomputed
    from answer text every time a report is built.

Rules, in order:

1. The first run of digits in the raw text, if it lies in 1..10, decides
   alone: 6 and above is positive.
2. Otherwise keywords are matched as substrings of the lower-cased, trimmed
   text. A match on exactly one side decides.
3. Otherwise (both or neither side matched) answers longer than 20
   characters are positive.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

POSITIVE_KEYWORDS = (
    "yes",
    "good",
    "great",
    "excellent",
    "satisfied",
    "happy",
    "love",
    "effective",
    "well",
    "recommend",
    "positive",
)

NEGATIVE_KEYWORDS = (
    "no",
    "bad",
    "poor",
    "unsatisfied",
    "unhappy",
    "hate",
    "ineffective",
    "difficult",
    "not",
    "don't",
    "negative",
)

RATING_MIN = 1
RATING_MAX = 10
POSITIVE_RATING_THRESHOLD = 6
# Keyword-free answers longer than this are read as engaged, i.e. positive.
LENGTH_THRESHOLD = 20

_DIGITS_RE = re.compile(r"\d+")
_ALNUM_RE = re.compile(r"[^\W_]")


class SentimentLabel(str, Enum):
    """Enumeration of supported sentiment classes."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class SentimentResult:
    """Structured sentiment analysis output."""

    label: SentimentLabel
    score: float  # -1.0, 0.0 or 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label.value, "score": self.score}


_SCORES = {
    SentimentLabel.POSITIVE: 1.0,
    SentimentLabel.NEUTRAL: 0.0,
    SentimentLabel.NEGATIVE: -1.0,
}


def _normalize(text: Optional[str]) -> str:
    return (text or "").lower().strip()


def extract_rating(text: Optional[str]) -> Optional[int]:
    """Return the first digit run of *text* if it is a valid 1–10 rating."""
    match = _DIGITS_RE.search(text or "")
    if not match:
        return None
    value = int(match.group(0))
    if RATING_MIN <= value <= RATING_MAX:
        return value
    return None


def keyword_polarity(text: Optional[str]) -> Optional[bool]:
    """Return *True*/*False* when exactly one keyword set matches, else *None*."""
    normalized = _normalize(text)
    has_positive = any(word in normalized for word in POSITIVE_KEYWORDS)
    has_negative = any(word in normalized for word in NEGATIVE_KEYWORDS)
    if has_positive and not has_negative:
        return True
    if has_negative and not has_positive:
        return False
    return None


def is_positive(text: Optional[str]) -> bool:
    """Return *True* if *text* reads as a positive answer."""
    rating = extract_rating(text)
    if rating is not None:
        return rating >= POSITIVE_RATING_THRESHOLD

    polarity = keyword_polarity(text)
    if polarity is not None:
        return polarity

    return len(_normalize(text)) > LENGTH_THRESHOLD


def classify(text: Optional[str]) -> SentimentLabel:
    """Two-valued classification: ``POSITIVE`` or ``NEGATIVE``."""
    return SentimentLabel.POSITIVE if is_positive(text) else SentimentLabel.NEGATIVE


def analyze_sentiment(text: Optional[str]) -> SentimentResult:
    """Classify *text* as positive, neutral or negative.

    Text with no letters or digits at all (empty, whitespace, bare
    punctuation) is neutral. Everything else follows :func:`classify`.
    """
    if not _ALNUM_RE.search(_normalize(text)):
        label = SentimentLabel.NEUTRAL
    else:
        label = classify(text)
    return SentimentResult(label=label, score=_SCORES[label])
