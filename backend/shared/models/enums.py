"""Domain enumerations for Matchday Consensus."""
from __future__ import annotations

from enum import Enum


class ReportMode(str, Enum):
    FULL = "full"
    TOP_N = "top_n"


class ConfidenceLevel(str, Enum):
    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class AgreementLevel(str, Enum):
    VERY_STRONG = "very_strong"
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class Reliability(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LIMITED = "limited"


class PredictionOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
