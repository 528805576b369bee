"""
Prediction history and per-source accuracy.
An append-only store behind a narrow interface; the consensus core never
touches it, the digest service feeds it curated summaries after each run.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Sequence

from shared.models.domain import ConsolidatedMatch, PredictionSummary, SourceAccuracy
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

logger = get_logger(__name__)


def summarize(matches: Iterable[ConsolidatedMatch], recorded_at: datetime) -> list[PredictionSummary]:
    """Reduce consolidated matches to the fields the history keeps."""
    return [
        PredictionSummary(
            home_team=m.home_team,
            away_team=m.away_team,
            league=m.league,
            best_prediction_label=m.consensus.best_prediction_label,
            average_confidence=m.consensus.average_confidence,
            agreement_percentage=m.consensus.agreement_percentage,
            source_count=m.consensus.source_count,
            recorded_at=recorded_at,
        )
        for m in matches
    ]


class StatisticsStore(ABC):
    """Append-only statistics collaborator."""

    @abstractmethod
    async def record_summary(self, entry: PredictionSummary) -> None:
        pass

    @abstractmethod
    async def record_outcome(self, source: str, correct: bool) -> None:
        """Grade one source's pick once the real result is known."""
        pass

    @abstractmethod
    async def source_accuracy(self) -> list[SourceAccuracy]:
        pass

    @abstractmethod
    async def summaries(self, month: str) -> list[PredictionSummary]:
        """Entries recorded in month ('YYYY-MM'), oldest first."""
        pass

    async def record_summaries(self, entries: Sequence[PredictionSummary]) -> int:
        for entry in entries:
            await self.record_summary(entry)
        return len(entries)


class InMemoryStatisticsStore(StatisticsStore):
    """Process-local store; history is lost on restart."""

    def __init__(self) -> None:
        self._history: list[PredictionSummary] = []
        self._outcomes: dict[str, SourceAccuracy] = {}

    async def record_summary(self, entry: PredictionSummary) -> None:
        self._history.append(entry)

    async def record_outcome(self, source: str, correct: bool) -> None:
        current = self._outcomes.get(source, SourceAccuracy(source=source))
        self._outcomes[source] = SourceAccuracy(
            source=source,
            correct=current.correct + (1 if correct else 0),
            total=current.total + 1,
        )

    async def source_accuracy(self) -> list[SourceAccuracy]:
        return [self._outcomes[name] for name in sorted(self._outcomes)]

    async def summaries(self, month: str) -> list[PredictionSummary]:
        return [e for e in self._history if e.month == month]


class RedisStatisticsStore(StatisticsStore):
    """Monthly JSON lists plus per-source counters in Redis."""

    def __init__(self, redis: RedisManager, history_ttl_s: int = 86400 * 400) -> None:
        self._redis = redis
        self._ttl = history_ttl_s

    async def record_summary(self, entry: PredictionSummary) -> None:
        await self._redis.append_summary(entry.month, entry.model_dump_json(), self._ttl)

    async def record_outcome(self, source: str, correct: bool) -> None:
        await self._redis.record_source_outcome(source, correct)

    async def source_accuracy(self) -> list[SourceAccuracy]:
        outcomes = await self._redis.get_source_outcomes()
        return [SourceAccuracy(source=name, **counts) for name, counts in outcomes.items()]

    async def summaries(self, month: str) -> list[PredictionSummary]:
        entries: list[PredictionSummary] = []
        for raw in await self._redis.read_summaries(month):
            try:
                entries.append(PredictionSummary.model_validate_json(raw))
            except ValueError as e:
                logger.warning("statistics_entry_invalid", month=month, error=str(e))
        return entries
