"""
Betbrain prediction cards.
"""
from __future__ import annotations

from consensus.sources.html import HtmlSelectorSource


class BetbrainSource(HtmlSelectorSource):
    path = "/en/predictions"
    row_selector = 'div[class*="prediction-item"]'
    home_selector = 'span[class*="home-team"]'
    away_selector = 'span[class*="away-team"]'
    prediction_selector = 'span[class*="prediction-text"]'
    confidence_selector = 'span[class*="confidence"]'

    @property
    def source_name(self) -> str:
        return "Betbrain"

    @property
    def base_url(self) -> str:
        return "https://www.betbrain.com"
