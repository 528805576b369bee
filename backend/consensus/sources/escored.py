"""
eScored match predictions.
Class names are loose ("home", "away"), so selectors match on substrings.
"""
from __future__ import annotations

from consensus.sources.html import HtmlSelectorSource


class EscoredSource(HtmlSelectorSource):
    path = "/en/football-predictions"
    row_selector = 'div[class*="match-prediction"]'
    home_selector = 'span[class*="home"]'
    away_selector = 'span[class*="away"]'
    prediction_selector = 'span[class*="prediction"]'
    confidence_selector = 'span[class*="confidence"]'

    @property
    def source_name(self) -> str:
        return "eScored"

    @property
    def base_url(self) -> str:
        return "https://www.escored.com"
