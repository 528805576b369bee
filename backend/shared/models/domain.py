"""
Pydantic v2 domain models shared across all Matchday Consensus services.
These are the canonical wire/internal representations.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.models.enums import PredictionOutcome

NO_CONSENSUS = "NO_CONSENSUS"


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# ── Source input ────────────────────────────────────────────────────────
class MatchRecord(DomainModel):
    """One source's claim about one match. Team names are kept exactly as reported."""
    source_name: str
    home_team: str = ""
    away_team: str = ""
    league: Optional[str] = None
    kickoff_time: Optional[str] = None
    prediction_label: str = ""
    confidence_score: float = 0.0

    @field_validator("home_team", "away_team", "prediction_label", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _missing_confidence_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("confidence_score")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return max(0.0, min(100.0, v))


# ── Consolidated output ─────────────────────────────────────────────────
class Consensus(DomainModel):
    """Derived agreement summary for one match."""
    best_prediction_label: str
    agreement_percentage: int
    average_confidence: int
    source_count: int = Field(ge=1)

    @property
    def has_prediction(self) -> bool:
        return self.best_prediction_label != NO_CONSENSUS


class ConsolidatedMatch(DomainModel):
    """One real-world match with evidence pooled from every source that reported it."""
    home_team: str
    away_team: str
    league: Optional[str] = None
    kickoff_time: Optional[str] = None
    sources: tuple[MatchRecord, ...]
    consensus: Consensus

    @property
    def source_count(self) -> int:
        return len(self.sources)

    @property
    def title(self) -> str:
        return f"{self.home_team} vs {self.away_team}"


# ── Statistics ──────────────────────────────────────────────────────────
class PredictionSummary(DomainModel):
    """Curated record handed to the statistics store after each run."""
    home_team: str
    away_team: str
    best_prediction_label: str
    average_confidence: int
    agreement_percentage: int
    source_count: int
    league: Optional[str] = None
    recorded_at: datetime
    result: Optional[PredictionOutcome] = None

    @property
    def match(self) -> str:
        return f"{self.home_team} vs {self.away_team}"

    @property
    def month(self) -> str:
        return self.recorded_at.strftime("%Y-%m")


class SourceAccuracy(DomainModel):
    source: str
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> int:
        if self.total <= 0:
            return 0
        return int(100 * self.correct / self.total + 0.5)
