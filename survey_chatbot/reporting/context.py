"""Context dataclass for rendering analytics reports.

This module defines `ReportContext`, a typed container that holds all
values expected by the Jinja2 template located in
`survey_chatbot/reporting/templates/report.md.j2`.

Keeping context building apart from template rendering lets the analytics
logic be tested without touching template strings.
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime as _dt
from datetime import timezone as _tz
from typing import Any, Dict, List, Optional, Sequence

from survey_chatbot import openai_client
from survey_chatbot.analysis.summary import generate_summary
from survey_chatbot.analysis.themes import extract_themes
from survey_chatbot.categories import Category, plural_label
from survey_chatbot.questions import AnswerKind, build_graph
from survey_chatbot.reporting import config
from survey_chatbot.reporting.aggregator import overall_sentiment
from survey_chatbot.reporting.insights import generate_insights, percent
from survey_chatbot.reporting.models import AggregateStats
from survey_chatbot.session_data import SubmissionRecord

__all__ = [
    "RecentResponse",
    "ReportContext",
    "build_report_context",
]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecentResponse:
    """One row of the recent responses table."""

    created: str
    category: str
    completed: bool
    answers: int
    sentiment: str


@dataclass(slots=True)
class ReportContext:
    """Container with all fields used by the report template."""

    # Header & meta
    date: str  # ISO-8601 date string (UTC)
    scope: str  # e.g. "All respondents" or "Customers"

    # Headline figures
    total: int
    completed: int
    completion_percent: int
    positive_percent: int
    average_minutes: int

    # Distributions
    category_counts: Dict[str, int]
    sentiment_counts: Dict[str, int]
    time_buckets: Dict[str, int]
    emoji_bar: str

    insights: List[Dict[str, str]] = field(default_factory=list)
    rating_pairs: List[List[int]] = field(default_factory=list)
    recent: List[RecentResponse] = field(default_factory=list)

    # Optional AI outputs
    themes: List[str] = field(default_factory=list)
    summary: str = ""

    version: str = "1"

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` (recursively) for Jinja rendering."""
        return asdict(self)

    # Alias for convenience (e.g. template kwargs)
    __call__ = to_dict


# ---------------------------------------------------------------------------
# Local helper functions
# ---------------------------------------------------------------------------
def _emoji_bar(counts: Dict[str, int], max_emoji: int = 20) -> str:
    """Return a string bar of emojis based on *counts*.

    Positive → 😊, Neutral → 😐, Negative → 🙁.  Limit total length to
    *max_emoji*.
    """

    pos = counts.get("positive", 0)
    neu = counts.get("neutral", 0)
    neg = counts.get("negative", 0)
    total = pos + neu + neg or 1

    scale = max_emoji / total
    pos_e = "😊" * max(1 if pos else 0, round(pos * scale))
    neu_e = "😐" * max(1 if neu else 0, round(neu * scale))
    neg_e = "🙁" * max(1 if neg else 0, round(neg * scale))
    return pos_e + neu_e + neg_e


def free_text_answers(records: Sequence[SubmissionRecord]) -> List[str]:
    """Return non-blank answers given to long-form questions."""
    graphs: Dict[Category, Dict[str, Any]] = {}
    answers: List[str] = []
    for record in records:
        graph = graphs.setdefault(record.category, build_graph(record.category))
        for node_id, text in record.answers.items():
            node = graph.get(node_id)
            if node is None or node.answer_kind is not AnswerKind.LONG:
                continue
            if text.strip():
                answers.append(text.strip())
    return answers


def _ai_insights(stats: AggregateStats, records: Sequence[SubmissionRecord]):
    """Return ``(themes, summary)`` or empty values when AI is off or fails."""
    if not config.AI_INSIGHTS_ENABLED or not openai_client.is_configured():
        return [], ""

    answers = free_text_answers(records)[: config.MAX_AI_ANSWERS]
    if not answers:
        return [], ""

    try:
        themes = extract_themes(answers, max_themes=config.MAX_THEMES)
    except Exception as exc:  # noqa: BLE001 – themes are optional
        logger.warning("Theme extraction failed: %s", exc)
        themes = []

    headline = (
        f"{stats.total} responses, {percent(stats.completed, stats.total)}% completed, "
        f"{percent(stats.positive_share(), 1)}% positive answers"
    )
    try:
        summary = generate_summary(answers, themes, headline=headline)
    except Exception as exc:  # noqa: BLE001 – summary optional
        logger.warning("Summary generation failed: %s", exc)
        summary = ""
    return themes, summary


def _recent_rows(records: Sequence[SubmissionRecord]) -> List[RecentResponse]:
    rows: List[RecentResponse] = []
    for record in records[: config.MAX_RECENT]:
        created = record.created_at.strftime("%Y-%m-%d %H:%M") if record.created_at else "-"
        rows.append(
            RecentResponse(
                created=created,
                category=record.category.value,
                completed=record.completed,
                answers=len(record.answers),
                sentiment=overall_sentiment(record.answers).value,
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Conversion helper
# ---------------------------------------------------------------------------
def build_report_context(
    stats: AggregateStats,
    records: Sequence[SubmissionRecord],
    *,
    scope: Optional[Category] = None,
) -> ReportContext:
    """Convert *stats* (and the *records* behind them) into :class:`ReportContext`.

    *records* are expected newest first, as returned by the submission store.
    The function never raises for optional AI failures so rendering always
    succeeds.
    """

    themes, summary = _ai_insights(stats, records)

    return ReportContext(
        date=_dt.now(tz=_tz.utc).strftime("%Y-%m-%d"),
        scope=plural_label(scope) if scope is not None else "All respondents",
        total=stats.total,
        completed=stats.completed,
        completion_percent=percent(stats.completed, stats.total),
        positive_percent=percent(stats.positive_share(), 1),
        average_minutes=stats.average_minutes,
        category_counts={plural_label(c): n for c, n in stats.category_counts.items()},
        sentiment_counts=dict(stats.sentiment_counts),
        time_buckets=dict(stats.time_buckets),
        emoji_bar=_emoji_bar(stats.sentiment_counts, config.MAX_EMOJI_BAR),
        insights=[
            {"kind": i.kind, "title": i.title, "description": i.description}
            for i in generate_insights(stats)
        ],
        rating_pairs=[[q, r] for q, r in stats.rating_pairs],
        recent=_recent_rows(records),
        themes=themes,
        summary=summary,
        version=os.getenv("REPORT_VERSION", "0.1"),
    )
