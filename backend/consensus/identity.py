"""
Match identity: the key under which records from different sources are merged.
Two records describe the same match iff their trimmed, case-folded
(home, away) pairs are equal. Home/away order is part of the identity.
"""
from __future__ import annotations

from typing import NamedTuple, Optional


class MatchIdentityKey(NamedTuple):
    home: str
    away: str


def normalize_team_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def resolve(home_team: Optional[str], away_team: Optional[str]) -> Optional[MatchIdentityKey]:
    """Return the identity key, or None when either name is blank (record is rejected)."""
    home = normalize_team_name(home_team)
    away = normalize_team_name(away_team)
    if not home or not away:
        return None
    return MatchIdentityKey(home, away)
