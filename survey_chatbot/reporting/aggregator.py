"""Aggregate stored survey submissions into :class:`AggregateStats`."""

from __future__ import annotations

import datetime
import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from survey_chatbot.analysis.sentiment import SentimentLabel, analyze_sentiment
from survey_chatbot.categories import Category, parse_category
from survey_chatbot.reporting.models import TIME_BUCKETS, AggregateStats
from survey_chatbot.session_data import SubmissionRecord

logger = logging.getLogger(__name__)

# Standalone 1-10 integers only; "2024" or "v3a" are not ratings.
_RATING_RE = re.compile(r"\b(\d+)\b")
_QUALITY_KEYS = ("q1", "q3")
_RECOMMEND_KEYS = ("q7",)


def _tally_sentiments(answers: Iterable[str]) -> Dict[str, int]:
    """Return a mapping label→count over every non-empty answer.

    Whitespace-only answers are kept; the classifier reads them as neutral.
    """
    counts: Counter[str] = Counter({label.value: 0 for label in SentimentLabel})
    for answer in answers:
        if answer is None or answer == "":
            continue
        counts[analyze_sentiment(str(answer)).label.value] += 1
    return dict(counts)


def time_bucket(elapsed_seconds: int) -> str:
    """Return the completion-time bucket label for *elapsed_seconds*."""
    minutes = elapsed_seconds // 60
    if minutes < 5:
        return TIME_BUCKETS[0]
    if minutes < 10:
        return TIME_BUCKETS[1]
    return TIME_BUCKETS[2]


def _pick(counts: Mapping[Category, int], *, highest: bool) -> Category:
    """Return the max/min category; ties go to the earliest in :class:`Category`."""
    best = None
    for category in Category:
        value = counts.get(category, 0)
        if best is None:
            best = category
        elif highest and value > counts.get(best, 0):
            best = category
        elif not highest and value < counts.get(best, 0):
            best = category
    return best  # type: ignore[return-value]


def _rating_of(answer: str) -> Optional[int]:
    match = _RATING_RE.search(answer)
    if not match:
        return None
    value = int(match.group(1))
    return value if 1 <= value <= 10 else None


def rating_pair(record: SubmissionRecord) -> Optional[Tuple[int, int]]:
    """Return ``(quality, recommendation)`` ratings from a customer record."""
    quality: Optional[int] = None
    recommendation: Optional[int] = None
    for key, answer in record.answers.items():
        value = _rating_of(str(answer))
        if value is None:
            continue
        lowered = str(answer).lower()
        if key in _QUALITY_KEYS or "satisf" in lowered:
            quality = value
        if key in _RECOMMEND_KEYS or "recommend" in lowered:
            recommendation = value
    if quality is None or recommendation is None:
        return None
    return quality, recommendation


def overall_sentiment(answers: Mapping[str, str]) -> SentimentLabel:
    """Return the majority label of one record's answers (ties → neutral)."""
    counts = _tally_sentiments(answers.values())
    pos = counts[SentimentLabel.POSITIVE.value]
    neg = counts[SentimentLabel.NEGATIVE.value]
    neu = counts[SentimentLabel.NEUTRAL.value]
    if pos > neg and pos > neu:
        return SentimentLabel.POSITIVE
    if neg > pos and neg > neu:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


def _to_date(value: Union[str, datetime.date, None]) -> Optional[datetime.date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value))


def filter_records(
    records: Iterable[SubmissionRecord],
    *,
    category: Union[Category, str, None] = None,
    start_date: Union[str, datetime.date, None] = None,
    end_date: Union[str, datetime.date, None] = None,
) -> List[SubmissionRecord]:
    """Return *records* matching the category and inclusive date range.

    ``category`` of *None* or ``"all"`` keeps every category. Dates compare
    against the calendar day of ``created_at``, so ``end_date`` includes the
    whole day. Records without ``created_at`` are dropped when a date bound
    is set.
    """
    wanted: Optional[Category] = None
    if category is not None and str(category).lower() != "all":
        wanted = parse_category(category)
        if wanted is None:
            raise ValueError(f"Unknown category filter '{category}'.")
    start = _to_date(start_date)
    end = _to_date(end_date)

    selected: List[SubmissionRecord] = []
    for record in records:
        if wanted is not None and record.category != wanted:
            continue
        if start is not None or end is not None:
            if record.created_at is None:
                continue
            day = record.created_at.date()
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
        selected.append(record)
    return selected


def aggregate(records: Sequence[SubmissionRecord]) -> AggregateStats:
    """Convert stored *records* into :class:`AggregateStats`.

    The function is read-only and total: an empty sequence yields zero
    counts and a completion rate of 0.
    """
    records = list(records)
    total = len(records)
    completed = sum(1 for r in records if r.completed)

    category_counts: Dict[Category, int] = {c: 0 for c in Category}
    for record in records:
        category_counts[record.category] = category_counts.get(record.category, 0) + 1

    all_answers = [answer for r in records for answer in r.answers.values()]
    sentiment_counts = _tally_sentiments(all_answers)

    time_buckets: Dict[str, int] = {name: 0 for name in TIME_BUCKETS}
    for record in records:
        if record.elapsed_seconds:
            time_buckets[time_bucket(record.elapsed_seconds)] += 1

    if total:
        elapsed_sum = sum(r.elapsed_seconds or 0 for r in records)
        average_minutes = int(elapsed_sum / total // 60)
        average_answers = len(all_answers) / total
        completion_rate = completed / total
    else:
        average_minutes = 0
        average_answers = 0.0
        completion_rate = 0.0

    rating_pairs = [
        pair
        for pair in (rating_pair(r) for r in records if r.category is Category.CUSTOMER)
        if pair is not None
    ]

    stats = AggregateStats(
        total=total,
        completed=completed,
        category_counts=category_counts,
        sentiment_counts=sentiment_counts,
        time_buckets=time_buckets,
        completion_rate=completion_rate,
        average_minutes=average_minutes,
        average_answers=average_answers,
        most_active=_pick(category_counts, highest=True),
        least_active=_pick(category_counts, highest=False),
        rating_pairs=rating_pairs,
    )
    logger.debug(
        "Aggregated %d record(s): categories=%s sentiments=%s",
        total,
        {c.value: n for c, n in category_counts.items()},
        sentiment_counts,
    )
    return stats
