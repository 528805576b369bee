"""
Consolidation engine.
Groups MatchRecords from every source under their identity key and computes
one consensus per match. Pure: no I/O, no state kept between calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from shared.models.domain import ConsolidatedMatch, MatchRecord

from consensus.identity import MatchIdentityKey, resolve
from consensus.scoring import compute_consensus


@dataclass
class _MatchGroup:
    """Mutable accumulator used only while a single consolidate() call runs."""
    home_team: str
    away_team: str
    league: Optional[str] = None
    kickoff_time: Optional[str] = None
    sources: list[MatchRecord] = field(default_factory=list)

    def add(self, record: MatchRecord) -> None:
        self.sources.append(record)
        if self.league is None and record.league:
            self.league = record.league
        if self.kickoff_time is None and record.kickoff_time:
            self.kickoff_time = record.kickoff_time

    def build(self) -> ConsolidatedMatch:
        sources = tuple(self.sources)
        return ConsolidatedMatch(
            home_team=self.home_team,
            away_team=self.away_team,
            league=self.league,
            kickoff_time=self.kickoff_time,
            sources=sources,
            consensus=compute_consensus(sources),
        )


def consolidate(records: Iterable[MatchRecord]) -> list[ConsolidatedMatch]:
    """
    Merge records that describe the same match.

    Records are processed in input order; that order decides which team-name
    spelling is displayed, which league/kickoff is kept (first seen wins), and
    how consensus ties are broken. Records without both team names are dropped.
    Matches without any usable prediction are returned too; filtering is the
    ranking step's job.
    """
    groups: dict[MatchIdentityKey, _MatchGroup] = {}
    for record in records:
        key = resolve(record.home_team, record.away_team)
        if key is None:
            continue
        group = groups.get(key)
        if group is None:
            group = _MatchGroup(
                home_team=record.home_team.strip(),
                away_team=record.away_team.strip(),
            )
            groups[key] = group
        group.add(record)
    return [group.build() for group in groups.values()]


class ConsolidationEngine:
    """Object wrapper around consolidate() for callers that inject collaborators."""

    def consolidate(self, records: Iterable[MatchRecord]) -> list[ConsolidatedMatch]:
        return consolidate(records)
