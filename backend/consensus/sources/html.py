"""
CSS-selector driven HTML sources.
Tipster sites publish one prediction per row; subclasses only declare where
each field lives.
"""
from __future__ import annotations

from typing import ClassVar, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from shared.models.domain import MatchRecord
from shared.utils.logging import get_logger

from consensus.sources.base import SourceAdapter, SourceFetchError, extract_confidence

logger = get_logger(__name__)


def _cell_text(row: Tag, selector: Optional[str]) -> str:
    if not selector:
        return ""
    cell = row.select_one(selector)
    return cell.get_text(" ", strip=True) if cell else ""


class HtmlSelectorSource(SourceAdapter):
    """Scrapes a predictions page with BeautifulSoup using the class-level selectors."""

    path: ClassVar[str] = "/"
    row_selector: ClassVar[str]
    home_selector: ClassVar[str]
    away_selector: ClassVar[str]
    prediction_selector: ClassVar[str]
    confidence_selector: ClassVar[Optional[str]] = None
    league_selector: ClassVar[Optional[str]] = None
    kickoff_selector: ClassVar[Optional[str]] = None

    def parse(self, html: str) -> list[MatchRecord]:
        """Turn a page into records; rows without both teams and a prediction are skipped."""
        soup = BeautifulSoup(html, "html.parser")
        records: list[MatchRecord] = []
        for row in soup.select(self.row_selector):
            home = _cell_text(row, self.home_selector)
            away = _cell_text(row, self.away_selector)
            prediction = _cell_text(row, self.prediction_selector)
            if not (home and away and prediction):
                continue
            records.append(self._record(
                home_team=home,
                away_team=away,
                league=_cell_text(row, self.league_selector) or None,
                kickoff_time=_cell_text(row, self.kickoff_selector) or None,
                prediction_label=prediction,
                confidence_score=extract_confidence(_cell_text(row, self.confidence_selector)),
            ))
        return records

    async def fetch_records(self) -> list[MatchRecord]:
        logger.info("source_fetch_started", source=self.source_name)
        try:
            async with self._http_client() as http:
                page = await http.get_text(self.path)
        except httpx.HTTPError as e:
            raise SourceFetchError(self.source_name, f"http: {e!r}") from e

        try:
            records = self.parse(page)
        except (ValueError, TypeError, AttributeError) as e:
            raise SourceFetchError(self.source_name, f"parse: {e!r}") from e
        logger.info("source_fetch_finished", source=self.source_name, records=len(records))
        return records
