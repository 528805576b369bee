"""
API-Football fixtures source (RapidAPI).
Structured JSON; the outcome with the highest win/draw percentage becomes the
prediction and that percentage its confidence.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import httpx

from shared.models.domain import MatchRecord
from shared.utils.logging import get_logger

from consensus.sources.base import SourceAdapter, SourceFetchError, extract_confidence

logger = get_logger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _kickoff(iso: Optional[str]) -> Optional[str]:
    """'2026-10-19T19:45:00+00:00' -> '19:45'."""
    if not iso or "T" not in iso:
        return None
    return iso.split("T", 1)[1][:5] or None


def outcome_from_percent(percent: dict[str, Any]) -> tuple[str, float]:
    """
    Pick 1/X/2 from {"home": "45%", "draw": "30%", "away": "25%"}.
    Draw is the default; home or away only win when strictly greatest.
    """
    home = extract_confidence(percent.get("home"))
    draw = extract_confidence(percent.get("draw"))
    away = extract_confidence(percent.get("away"))
    if home > draw and home > away:
        return "1", home
    if away > draw and away > home:
        return "2", away
    return "X", draw


class ApiFootballSource(SourceAdapter):
    """Fetches today's fixtures with their predictions block."""

    def __init__(
        self,
        api_key: str,
        api_host: str = "api-football-v3.p.rapidapi.com",
        today: Callable[[], date] = _utc_today,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._api_host = api_host
        self._today = today

    @property
    def source_name(self) -> str:
        return "API-Football"

    @property
    def base_url(self) -> str:
        return f"https://{self._api_host}"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers.update({"x-rapidapi-key": self._api_key, "x-rapidapi-host": self._api_host})
        return headers

    def parse(self, payload: dict[str, Any]) -> list[MatchRecord]:
        """Fixtures without percentages yield a record with a blank prediction."""
        records: list[MatchRecord] = []
        for fixture in payload.get("response") or []:
            teams = fixture.get("teams") or {}
            home = (teams.get("home") or {}).get("name")
            away = (teams.get("away") or {}).get("name")
            if not home or not away:
                continue
            percent = (fixture.get("predictions") or {}).get("percent") or {}
            label, confidence = outcome_from_percent(percent) if percent else ("", 0.0)
            records.append(self._record(
                home_team=home,
                away_team=away,
                league=(fixture.get("league") or {}).get("name"),
                kickoff_time=_kickoff((fixture.get("fixture") or {}).get("date")),
                prediction_label=label,
                confidence_score=confidence,
            ))
        return records

    async def fetch_records(self) -> list[MatchRecord]:
        if not self._api_key:
            logger.info("source_disabled_no_api_key", source=self.source_name)
            return []
        today = self._today()
        logger.info("source_fetch_started", source=self.source_name, date=today.isoformat())
        try:
            async with self._http_client() as http:
                payload = await http.get_json("/fixtures", params={"date": today.isoformat(), "season": today.year})
        except httpx.HTTPError as e:
            raise SourceFetchError(self.source_name, f"http: {e!r}") from e
        except ValueError as e:
            raise SourceFetchError(self.source_name, f"invalid json: {e!r}") from e

        if not isinstance(payload, dict):
            raise SourceFetchError(self.source_name, "unexpected payload shape")
        records = self.parse(payload)
        logger.info("source_fetch_finished", source=self.source_name, records=len(records))
        return records
