"""
Forebet predictions table.
One <tr data-match-id> per fixture; probability cell carries the confidence.
"""
from __future__ import annotations

from consensus.sources.html import HtmlSelectorSource


class ForebetSource(HtmlSelectorSource):
    path = "/en/football-predictions"
    row_selector = "tr[data-match-id]"
    home_selector = "td.team1"
    away_selector = "td.team2"
    prediction_selector = "td.prediction"
    confidence_selector = "td.probability"
    league_selector = "td.league"
    kickoff_selector = "td.time"

    @property
    def source_name(self) -> str:
        return "Forebet"

    @property
    def base_url(self) -> str:
        return "https://www.forebet.com"
