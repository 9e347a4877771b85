"""Heuristic insights derived from :class:`AggregateStats`."""
from __future__ import annotations

import math
from typing import List

from survey_chatbot.categories import label
from survey_chatbot.reporting.models import AggregateStats, Insight

GOOD_COMPLETION_PERCENT = 80
FAIR_COMPLETION_PERCENT = 50


def percent(part: float, whole: float) -> int:
    """Return ``part / whole`` as a whole percentage, rounding halves up."""
    if not whole:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def generate_insights(stats: AggregateStats) -> List[Insight]:
    """Return the ordered list of insights for *stats*."""
    if stats.total == 0:
        return [
            Insight(
                kind="info",
                title="No Data Yet",
                description="Start collecting survey responses to see insights here.",
            )
        ]

    insights: List[Insight] = []

    if stats.most_active is not None:
        top_count = stats.category_counts.get(stats.most_active, 0)
        if top_count > 0:
            insights.append(
                Insight(
                    kind="positive",
                    title="Most Active Group",
                    description=(
                        f"{label(stats.most_active)}s are the most engaged with "
                        f"{top_count} responses ({percent(top_count, stats.total)}%)."
                    ),
                )
            )

    rate = percent(stats.completed, stats.total)
    if rate >= GOOD_COMPLETION_PERCENT:
        kind = "positive"
        advice = "Great engagement!"
    else:
        kind = "neutral" if rate >= FAIR_COMPLETION_PERCENT else "negative"
        advice = "Consider shortening the survey or adding incentives."
    insights.append(
        Insight(
            kind=kind,
            title="Completion Rate",
            description=f"{rate}% of surveys are fully completed. {advice}",
        )
    )

    insights.append(
        Insight(
            kind="info",
            title="Engagement Depth",
            description=(
                "On average, respondents answer "
                f"{stats.average_answers:.1f} questions per survey."
            ),
        )
    )

    if stats.least_active is not None and stats.category_counts.get(stats.least_active, 0) == 0:
        insights.append(
            Insight(
                kind="warning",
                title="Engagement Gap",
                description=(
                    f"No responses from {label(stats.least_active).lower()}s yet. "
                    "Consider targeted outreach to this group."
                ),
            )
        )

    return insights
