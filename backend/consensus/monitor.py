"""
Odds change monitor.
Compares successive odds snapshots and alerts on large moves. No live odds
feed is wired in: fetch_current_odds() returns nothing until one exists.
"""
from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional, Sequence

from shared.models.domain import ConsolidatedMatch
from shared.utils.logging import get_logger

from notifier.base import NotificationSink

logger = get_logger(__name__)

OddsKey = tuple[str, str, str]


@dataclass(frozen=True)
class OddsQuote:
    home_team: str
    away_team: str
    market: str
    value: float

    @property
    def key(self) -> OddsKey:
        return (self.home_team, self.away_team, self.market)


@dataclass(frozen=True)
class OddsChange:
    quote: OddsQuote
    previous: float

    @property
    def change_ratio(self) -> float:
        return abs(self.quote.value - self.previous) / self.previous

    @property
    def rising(self) -> bool:
        return self.quote.value > self.previous


def detect_odds_changes(
    previous: dict[OddsKey, float],
    quotes: Sequence[OddsQuote],
    threshold: float = 0.15,
) -> list[OddsChange]:
    """Quotes whose relative move since the previous snapshot exceeds threshold."""
    changes = []
    for quote in quotes:
        before = previous.get(quote.key)
        if not before:
            continue
        change = OddsChange(quote=quote, previous=before)
        if change.change_ratio > threshold:
            changes.append(change)
    return changes


def render_odds_change(change: OddsChange) -> str:
    q = change.quote
    direction = "📈 UP" if change.rising else "📉 DOWN"
    return (
        "⚡ <b>ODDS CHANGE ALERT</b>\n\n"
        f"🎯 {escape(q.home_team)} vs {escape(q.away_team)}\n"
        f"📊 Market: {escape(q.market)}\n"
        f"{direction} {int(change.change_ratio * 100 + 0.5)}%\n"
        f"📍 From: {change.previous:.2f} → To: {q.value:.2f}"
    )


def render_kickoff_reminder(match: ConsolidatedMatch, minutes_until_start: int = 60) -> str:
    c = match.consensus
    lines = [
        f"⏰ <b>MATCH STARTING IN {minutes_until_start} MINUTES</b>",
        "",
        f"⚽ {escape(match.title)}",
    ]
    if match.league:
        lines.append(f"🏆 {escape(match.league)}")
    if match.kickoff_time:
        lines.append(f"🕐 {escape(match.kickoff_time)}")
    lines.extend([
        "",
        f"🎯 Prediction: {escape(c.best_prediction_label)}",
        f"📈 Confidence: {c.average_confidence}%",
        f"🤝 Agreement: {c.agreement_percentage}%",
    ])
    return "\n".join(lines)


def render_result(match: ConsolidatedMatch, result: str) -> str:
    prediction = match.consensus.best_prediction_label
    correct = result.strip().upper() == prediction
    return (
        f"{'✅' if correct else '❌'} <b>FINAL RESULT</b>\n\n"
        f"⚽ {escape(match.title)}\n"
        f"📊 Result: {escape(result)}\n"
        f"🎯 Prediction: {escape(prediction)}\n"
        f"{'✅ CORRECT PREDICTION!' if correct else '❌ Incorrect prediction'}"
    )


class OddsMonitor:
    """Keeps the last seen value per (home, away, market) and alerts on big moves."""

    def __init__(self, sink: NotificationSink, threshold: float = 0.15) -> None:
        self._sink = sink
        self._threshold = threshold
        self._previous: dict[OddsKey, float] = {}

    async def fetch_current_odds(self) -> list[OddsQuote]:
        return []

    async def check_once(self, quotes: Optional[Sequence[OddsQuote]] = None) -> list[OddsChange]:
        """One polling cycle. Alert delivery failures are logged, not raised."""
        current = list(quotes) if quotes is not None else await self.fetch_current_odds()
        changes = detect_odds_changes(self._previous, current, self._threshold)
        for change in changes:
            try:
                await self._sink.send_message(render_odds_change(change))
            except Exception as e:
                logger.error("odds_alert_failed", key=change.quote.key, error=str(e))
        for quote in current:
            self._previous[quote.key] = quote.value
        if changes:
            logger.info("odds_changes_detected", count=len(changes))
        return changes
