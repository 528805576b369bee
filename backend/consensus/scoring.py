"""
Consensus scoring for consolidated matches.
Most common label wins (first to reach the max count on ties); agreement is
its share of sources; confidence is the mean of the reported confidences.
"""
from __future__ import annotations

import math
from typing import Sequence

from shared.models.domain import NO_CONSENSUS, Consensus, MatchRecord
from shared.models.enums import AgreementLevel, ConfidenceLevel, Reliability


def round_half_up(value: float) -> int:
    """Round .5 upwards (64.5 -> 65), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def normalize_label(label: str) -> str:
    return (label or "").strip().upper()


def compute_consensus(sources: Sequence[MatchRecord]) -> Consensus:
    """
    Compute the consensus for a non-empty sequence of records about one match.

    Labels are compared case-insensitively and reported upper-cased. Records
    with a blank label count towards source_count and the confidence mean but
    never towards any label. If no record carries a label the result is the
    NO_CONSENSUS sentinel with zero agreement and zero confidence.
    """
    source_count = len(sources)
    if source_count == 0:
        raise ValueError("compute_consensus requires at least one source")

    counts: dict[str, int] = {}
    best_label = ""
    best_count = 0
    for record in sources:
        label = normalize_label(record.prediction_label)
        if not label:
            continue
        counts[label] = counts.get(label, 0) + 1
        # Strictly greater: on ties the label that got there first keeps the lead
        if counts[label] > best_count:
            best_label, best_count = label, counts[label]

    if not best_label:
        return Consensus(
            best_prediction_label=NO_CONSENSUS,
            agreement_percentage=0,
            average_confidence=0,
            source_count=source_count,
        )

    total_confidence = sum(r.confidence_score or 0.0 for r in sources)
    return Consensus(
        best_prediction_label=best_label,
        agreement_percentage=round_half_up(100 * best_count / source_count),
        average_confidence=round_half_up(total_confidence / source_count),
        source_count=source_count,
    )


def confidence_level(confidence: float) -> ConfidenceLevel:
    if confidence >= 75:
        return ConfidenceLevel.VERY_HIGH
    if confidence >= 60:
        return ConfidenceLevel.HIGH
    if confidence >= 45:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def agreement_level(agreement: float) -> AgreementLevel:
    if agreement >= 80:
        return AgreementLevel.VERY_STRONG
    if agreement >= 60:
        return AgreementLevel.STRONG
    if agreement >= 40:
        return AgreementLevel.MODERATE
    return AgreementLevel.WEAK


def reliability(consensus: Consensus) -> Reliability:
    """Overall verdict used in the recommendation line of a report."""
    agreement = consensus.agreement_percentage
    confidence = consensus.average_confidence
    if agreement >= 70 and confidence >= 60:
        return Reliability.HIGH
    if agreement >= 50 and confidence >= 50:
        return Reliability.MODERATE
    return Reliability.LIMITED
