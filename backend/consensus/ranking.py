"""
Ranking and quality filtering of consolidated matches.
"""
from __future__ import annotations

from typing import Iterable

from shared.models.domain import ConsolidatedMatch


def _sort_key(match: ConsolidatedMatch) -> tuple[int, int]:
    return (-match.consensus.average_confidence, -match.consensus.agreement_percentage)


def rank(matches: Iterable[ConsolidatedMatch], min_confidence: float) -> list[ConsolidatedMatch]:
    """
    Keep matches whose average confidence is >= min_confidence, best first.

    Ordered by average confidence, then agreement, both descending. Python's
    sort is stable, so anything still tied keeps its input order.
    """
    kept = [m for m in matches if m.consensus.average_confidence >= min_confidence]
    return sorted(kept, key=_sort_key)


class RankingFilter:
    """Binds a confidence threshold chosen by configuration."""

    def __init__(self, min_confidence: float) -> None:
        self.min_confidence = min_confidence

    def rank(self, matches: Iterable[ConsolidatedMatch]) -> list[ConsolidatedMatch]:
        return rank(matches, self.min_confidence)
