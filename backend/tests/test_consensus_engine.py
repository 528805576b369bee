"""
Unit tests for match identity, consensus scoring and consolidation.

Run: pytest backend/tests/test_consensus_engine.py -v
"""
from __future__ import annotations

import pytest

from shared.models.domain import NO_CONSENSUS, Consensus, MatchRecord
from shared.models.enums import AgreementLevel, ConfidenceLevel, Reliability

from consensus.engine import ConsolidationEngine, consolidate
from consensus.identity import MatchIdentityKey, normalize_team_name, resolve
from consensus.scoring import (
    agreement_level,
    compute_consensus,
    confidence_level,
    normalize_label,
    reliability,
    round_half_up,
)


def _rec(source: str, home: str, away: str, label: str = "", conf: float = 0.0, **kw) -> MatchRecord:
    return MatchRecord(
        source_name=source,
        home_team=home,
        away_team=away,
        prediction_label=label,
        confidence_score=conf,
        **kw,
    )


# ── Identity ────────────────────────────────────────────────────────────

def test_normalize_team_name_trims_and_lowercases() -> None:
    assert normalize_team_name("  Sporting CP ") == "sporting cp"
    assert normalize_team_name(None) == ""


def test_resolve_is_case_and_whitespace_insensitive() -> None:
    assert resolve("Sporting", "Porto") == resolve(" sporting", "PORTO ")
    assert resolve("Sporting", "Porto") == MatchIdentityKey("sporting", "porto")


def test_resolve_keeps_home_away_order() -> None:
    assert resolve("Sporting", "Porto") != resolve("Porto", "Sporting")


@pytest.mark.parametrize("home,away", [("", "Porto"), ("Sporting", "   "), (None, "Porto")])
def test_resolve_rejects_blank_names(home, away) -> None:
    assert resolve(home, away) is None


# ── Scoring ─────────────────────────────────────────────────────────────

def test_round_half_up() -> None:
    assert round_half_up(64.5) == 65
    assert round_half_up(64.49) == 64
    assert round_half_up(66.666) == 67
    assert round_half_up(0.5) == 1


def test_normalize_label() -> None:
    assert normalize_label(" x ") == "X"
    assert normalize_label("") == ""


def test_compute_consensus_requires_sources() -> None:
    with pytest.raises(ValueError):
        compute_consensus([])


def test_compute_consensus_tie_goes_to_first_seen_label() -> None:
    c = compute_consensus([
        _rec("A", "H", "W", "1", 60),
        _rec("B", "H", "W", "X", 60),
    ])
    assert c.best_prediction_label == "1"
    assert c.agreement_percentage == 50
    assert c.average_confidence == 60
    assert c.source_count == 2


def test_compute_consensus_labels_compared_case_insensitively() -> None:
    c = compute_consensus([
        _rec("A", "H", "W", "over", 70),
        _rec("B", "H", "W", "OVER ", 70),
        _rec("C", "H", "W", "GG", 70),
    ])
    assert c.best_prediction_label == "OVER"
    assert c.agreement_percentage == 67


def test_compute_consensus_blank_labels_count_as_sources_only() -> None:
    c = compute_consensus([
        _rec("A", "H", "W", "2", 80),
        _rec("B", "H", "W", "", 0),
    ])
    assert c.best_prediction_label == "2"
    assert c.agreement_percentage == 50
    assert c.average_confidence == 40
    assert c.source_count == 2


def test_compute_consensus_without_labels_is_no_consensus() -> None:
    c = compute_consensus([_rec("A", "H", "W", "", 55), _rec("B", "H", "W", "  ", 70)])
    assert c.best_prediction_label == NO_CONSENSUS
    assert not c.has_prediction
    assert c.agreement_percentage == 0
    assert c.average_confidence == 0
    assert c.source_count == 2


def test_single_source_agrees_with_itself() -> None:
    c = compute_consensus([_rec("A", "H", "W", "1X", 58.6)])
    assert c.agreement_percentage == 100
    assert c.average_confidence == 59


@pytest.mark.parametrize("value,expected", [
    (75, ConfidenceLevel.VERY_HIGH),
    (74, ConfidenceLevel.HIGH),
    (60, ConfidenceLevel.HIGH),
    (45, ConfidenceLevel.MEDIUM),
    (44, ConfidenceLevel.LOW),
])
def test_confidence_level(value, expected) -> None:
    assert confidence_level(value) == expected


@pytest.mark.parametrize("value,expected", [
    (80, AgreementLevel.VERY_STRONG),
    (60, AgreementLevel.STRONG),
    (40, AgreementLevel.MODERATE),
    (39, AgreementLevel.WEAK),
])
def test_agreement_level(value, expected) -> None:
    assert agreement_level(value) == expected


def test_agreement_level_labels_are_readable() -> None:
    assert AgreementLevel.VERY_STRONG.label == "Very strong"


def test_reliability() -> None:
    def c(agreement: int, confidence: int) -> Consensus:
        return Consensus(
            best_prediction_label="1",
            agreement_percentage=agreement,
            average_confidence=confidence,
            source_count=3,
        )

    assert reliability(c(70, 60)) == Reliability.HIGH
    assert reliability(c(69, 90)) == Reliability.MODERATE
    assert reliability(c(50, 50)) == Reliability.MODERATE
    assert reliability(c(100, 49)) == Reliability.LIMITED


# ── Consolidation ───────────────────────────────────────────────────────

def test_consolidate_merges_spelling_variants_of_one_match() -> None:
    records = [
        _rec("A", "Sporting", "Porto", "1", 70),
        _rec("B", "sporting", " porto ", "1", 74),
        _rec("C", "Sporting", "Porto", "X", 50),
    ]
    matches = consolidate(records)
    assert len(matches) == 1
    m = matches[0]
    assert m.source_count == 3
    assert m.consensus.source_count == 3
    assert m.consensus.best_prediction_label == "1"
    assert m.consensus.agreement_percentage == 67
    assert m.consensus.average_confidence == 65
    assert m.title == "Sporting vs Porto"
    assert [r.source_name for r in m.sources] == ["A", "B", "C"]


def test_consolidate_keeps_first_seen_display_names_and_metadata() -> None:
    records = [
        _rec("A", " benfica", "Braga", "1", 60),
        _rec("B", "Benfica", "Braga", "1", 60, league="Liga Portugal", kickoff_time="20:15"),
        _rec("C", "BENFICA", "braga", "1", 60, league="Primeira Liga", kickoff_time="21:00"),
    ]
    (m,) = consolidate(records)
    assert m.home_team == "benfica"
    assert m.away_team == "Braga"
    assert m.league == "Liga Portugal"
    assert m.kickoff_time == "20:15"


def test_consolidate_preserves_first_seen_match_order() -> None:
    records = [
        _rec("A", "Porto", "Benfica", "1", 70),
        _rec("A", "Sporting", "Braga", "2", 70),
        _rec("B", "porto", "benfica", "X", 50),
    ]
    matches = consolidate(records)
    assert [m.title for m in matches] == ["Porto vs Benfica", "Sporting vs Braga"]


def test_consolidate_reversed_fixture_is_a_different_match() -> None:
    matches = consolidate([
        _rec("A", "Porto", "Benfica", "1", 70),
        _rec("B", "Benfica", "Porto", "1", 70),
    ])
    assert len(matches) == 2


def test_consolidate_drops_records_without_both_teams() -> None:
    matches = consolidate([
        _rec("A", "", "Benfica", "1", 70),
        _rec("B", "Porto", "", "1", 70),
        _rec("C", "Porto", "Benfica", "2", 65),
    ])
    assert len(matches) == 1
    assert matches[0].source_count == 1


def test_consolidate_returns_unlabelled_matches() -> None:
    (m,) = consolidate([_rec("A", "Porto", "Benfica", "", 0)])
    assert m.consensus.best_prediction_label == NO_CONSENSUS


def test_consolidate_empty_input() -> None:
    assert consolidate([]) == []


def test_consolidate_is_stateless_between_calls() -> None:
    engine = ConsolidationEngine()
    records = [_rec("A", "Porto", "Benfica", "1", 70)]
    first = engine.consolidate(records)
    second = engine.consolidate(records)
    assert first == second
    assert second[0].source_count == 1


def test_match_record_normalizes_missing_fields() -> None:
    r = MatchRecord(source_name="A", home_team=None, prediction_label=None, confidence_score=None)
    assert r.home_team == ""
    assert r.prediction_label == ""
    assert r.confidence_score == 0.0


def test_match_record_clamps_confidence_to_percentage_range() -> None:
    assert MatchRecord(source_name="A", confidence_score=500).confidence_score == 100.0
    assert MatchRecord(source_name="A", confidence_score=-5).confidence_score == 0.0
    c = compute_consensus([_rec("A", "H", "W", "1", 500), _rec("B", "H", "W", "1", 80)])
    assert c.average_confidence == 90
