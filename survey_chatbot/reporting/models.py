"""Data structures for reporting pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from survey_chatbot.categories import Category

TIME_BUCKETS: Tuple[str, ...] = ("0-5 min", "5-10 min", "10+ min")


@dataclass(slots=True)
class AggregateStats:
    """Summary counts computed from a batch of stored submissions."""

    total: int
    completed: int
    category_counts: Dict[Category, int]
    sentiment_counts: Dict[str, int]
    time_buckets: Dict[str, int]
    completion_rate: float = 0.0
    average_minutes: int = 0
    average_answers: float = 0.0
    most_active: Optional[Category] = None
    least_active: Optional[Category] = None
    rating_pairs: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def in_progress(self) -> int:
        return self.total - self.completed

    @property
    def sentiment_total(self) -> int:
        return sum(self.sentiment_counts.values())

    def positive_share(self) -> float:
        """Return fraction of tallied answers that are positive (0‒1)."""
        total = self.sentiment_total
        if not total:
            return 0.0
        return self.sentiment_counts.get("positive", 0) / total


@dataclass(slots=True)
class Insight:
    """One heuristic observation shown in the report's insights section."""

    kind: str  # positive | neutral | negative | info | warning
    title: str
    description: str
