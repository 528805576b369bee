"""
Report rendering for the notification channel (Telegram HTML).
Every renderer is a pure function of its arguments: the report date is passed
in, never read from the clock, so identical input gives byte-identical text.
"""
from __future__ import annotations

from datetime import date
from html import escape
from typing import Optional, Sequence

from shared.models.domain import (
    NO_CONSENSUS,
    ConsolidatedMatch,
    PredictionSummary,
    SourceAccuracy,
)
from shared.models.enums import PredictionOutcome, ReportMode, Reliability

from consensus.scoring import agreement_level, confidence_level, reliability, round_half_up

HEAVY_RULE = "═" * 30
LIGHT_RULE = "─" * 30
MEDALS = ("🥇", "🥈", "🥉", "4️⃣", "5️⃣")

RECOMMENDATIONS: dict[Reliability, str] = {
    Reliability.HIGH: "Prediction with <b>high reliability</b>. Several sources agree.",
    Reliability.MODERATE: "Prediction <b>moderately reliable</b>. Most sources agree.",
    Reliability.LIMITED: "Prediction with <b>limited reliability</b>. Consider other options.",
}


def _date_suffix(report_date: Optional[date]) -> str:
    return f" - {report_date.strftime('%d/%m/%Y')}" if report_date else ""


def _number(value: float) -> str:
    """72.0 -> '72', 72.5 -> '72.5'."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def describe_prediction(label: str, home_team: str, away_team: str) -> str:
    """Human-readable text for a prediction code; unknown codes are returned as-is."""
    code = (label or "").strip().upper()
    descriptions = {
        "1": f"{home_team} win",
        "X": "Draw",
        "2": f"{away_team} win",
        "1X": f"{home_team} win or draw",
        "12": f"{home_team} or {away_team} win",
        "X2": f"Draw or {away_team} win",
        "OVER": "Over 2.5 goals",
        "UNDER": "Under 2.5 goals",
        "GG": "Both teams to score",
        "NG": "At least one team fails to score",
        NO_CONSENSUS: "No consensus",
    }
    return descriptions.get(code, label)


def render_match_analysis(match: ConsolidatedMatch) -> list[str]:
    """Detailed block for one match: levels, per-source picks, recommendation."""
    c = match.consensus
    prediction = describe_prediction(c.best_prediction_label, match.home_team, match.away_team)
    lines = [
        f"🎯 <b>Best prediction:</b> {escape(prediction)}",
        f"📈 <b>Confidence:</b> {c.average_confidence}% ({confidence_level(c.average_confidence).label})",
        f"🤝 <b>Agreement between sources:</b> {c.agreement_percentage}% "
        f"({agreement_level(c.agreement_percentage).label})",
        f"📍 <b>Sources consulted:</b> {c.source_count}",
        "",
        "<b>Predictions by source:</b>",
    ]
    seen: set[str] = set()
    for record in match.sources:
        if record.source_name in seen:
            continue
        seen.add(record.source_name)
        conf = f" ({_number(record.confidence_score)}%)" if record.confidence_score else ""
        lines.append(
            f"   • <b>{escape(record.source_name)}:</b> {escape(record.prediction_label or '-')}{conf}"
        )
    lines.append("")
    lines.append(f"💡 <b>Recommendation:</b> {RECOMMENDATIONS[reliability(c)]}")
    return lines


class MessageFormatter:
    """
    Renders ranked matches into digest text.

    Args:
        max_records: Cap on matches shown in a FULL report (None = no cap).
        min_confidence: Threshold shown in the header; None hides the line.
        source_names: Source names listed in the footer.
    """

    def __init__(
        self,
        max_records: Optional[int] = 10,
        min_confidence: Optional[float] = None,
        source_names: Sequence[str] = (),
    ) -> None:
        self.max_records = max_records
        self.min_confidence = min_confidence
        self.source_names = tuple(source_names)

    def format(
        self,
        matches: Sequence[ConsolidatedMatch],
        mode: ReportMode = ReportMode.FULL,
        top_n: int = 5,
        report_date: Optional[date] = None,
    ) -> Optional[str]:
        """Render the report, or None when there is nothing to publish."""
        if not matches:
            return None
        if mode == ReportMode.TOP_N:
            return self.render_top_n(matches, top_n, report_date)
        return self.render_full(matches, report_date)

    def _threshold_line(self) -> list[str]:
        if self.min_confidence is None:
            return []
        return [f"⭐ Filtered by confidence (minimum {_number(self.min_confidence)}%)"]

    def _sources_line(self) -> list[str]:
        if not self.source_names:
            return []
        return [f"📍 <b>Sources:</b> {escape(', '.join(self.source_names))}"]

    def render_full(
        self,
        matches: Sequence[ConsolidatedMatch],
        report_date: Optional[date] = None,
    ) -> Optional[str]:
        shown = list(matches[: self.max_records] if self.max_records is not None else matches)
        if not shown:
            return None

        lines = [
            f"🏆 <b>CONSOLIDATED PREDICTIONS{_date_suffix(report_date)}</b>",
            "📊 Analysis across multiple specialist sources",
            *self._threshold_line(),
            "",
            HEAVY_RULE,
            "",
        ]
        for index, match in enumerate(shown, start=1):
            c = match.consensus
            lines.append(f"⚽ <b>{index}. {escape(match.title)}</b>")
            if match.league:
                lines.append(f"🏆 {escape(match.league)}")
            if match.kickoff_time:
                lines.append(f"⏰ {escape(match.kickoff_time)}")
            lines.append(f"🎯 Prediction: <b>{escape(c.best_prediction_label)}</b>")
            lines.append(f"📈 Confidence: {c.average_confidence}%")
            lines.append(f"🤝 Agreement: {c.agreement_percentage}%")
            lines.append(f"📍 Sources: {c.source_count}")
            lines.append("")
            lines.extend(render_match_analysis(match))
            lines.extend(["", LIGHT_RULE, ""])

        lines.append(f"✅ <b>Matches analysed:</b> {len(shown)}")
        lines.extend(self._sources_line())
        lines.append("")
        lines.append("💡 <i>These predictions come from a consolidated analysis of several specialists.</i>")
        lines.append("<i>Play responsibly!</i>")
        return "\n".join(lines)

    def render_top_n(
        self,
        matches: Sequence[ConsolidatedMatch],
        n: int,
        report_date: Optional[date] = None,
    ) -> Optional[str]:
        """First n matches of the already-ranked input; never re-sorts."""
        shown = list(matches[: max(n, 0)])
        if not shown:
            return None

        lines = [
            f"🏆 <b>TOP {len(shown)} PREDICTIONS{_date_suffix(report_date)}</b>",
            *self._threshold_line(),
            "",
            HEAVY_RULE,
            "",
        ]
        for index, match in enumerate(shown, start=1):
            c = match.consensus
            medal = MEDALS[index - 1] if index <= len(MEDALS) else "🔹"
            prediction = describe_prediction(c.best_prediction_label, match.home_team, match.away_team)
            lines.append(f"{medal} <b>{index}. {escape(match.title)}</b>")
            lines.append(f"🎯 Prediction: <b>{escape(prediction)}</b>")
            lines.append(f"📈 Confidence: <b>{c.average_confidence}%</b>")
            lines.append(f"🤝 Agreement: {c.agreement_percentage}%")
            lines.append(f"📍 Sources: {c.source_count}")
            lines.append("")

        mean_confidence = round_half_up(
            sum(m.consensus.average_confidence for m in matches) / len(matches)
        )
        lines.extend([HEAVY_RULE, ""])
        lines.append("📊 <b>Statistics:</b>")
        lines.append(f"   Total matches: {len(matches)}")
        lines.append(f"   Average confidence: {mean_confidence}%")
        lines.extend(self._sources_line())
        lines.append("")
        lines.append("💡 <i>Only high-reliability predictions are shown.</i>")
        lines.append("<i>Play responsibly!</i>")
        return "\n".join(lines)


# ── Service notices ─────────────────────────────────────────────────────

def render_no_predictions(report_date: Optional[date] = None) -> str:
    return (
        f"📅 <b>Consolidated predictions{_date_suffix(report_date)}</b>\n\n"
        "⚠️ No predictions available today.\n\n"
        "Come back tomorrow for new predictions!"
    )


def render_error(error: BaseException) -> str:
    return (
        "❌ <b>Bot error</b>\n\n"
        f"<code>{escape(str(error) or type(error).__name__)}</code>\n\n"
        "<i>The bot will keep running normally.</i>"
    )


def render_startup(send_times: Sequence[str], timezone_name: str) -> str:
    times = ", ".join(send_times) or "-"
    return (
        "🤖 <b>Football Predictions Bot</b>\n\n"
        "✅ Bot started successfully!\n\n"
        f"📅 Daily predictions at {escape(times)} ({escape(timezone_name)})\n"
        "⚽ Consensus across several prediction sources\n\n"
        "<i>Waiting for the next run...</i>"
    )


# ── Statistics report ───────────────────────────────────────────────────

def accuracy_bar(accuracy: int, width: int = 10) -> str:
    filled = min(width, max(0, round_half_up(accuracy / (100 / width))))
    return "█" * filled + "░" * (width - filled)


def render_statistics_report(
    accuracies: Sequence[SourceAccuracy],
    summaries: Sequence[PredictionSummary],
    month: str,
) -> str:
    """Per-source accuracy plus the month's totals and best/worst graded picks."""
    lines = ["📊 <b>PREDICTION STATISTICS</b>", "", "<b>Accuracy by source:</b>"]
    if not accuracies:
        lines.append("   No graded predictions yet.")
    for acc in accuracies:
        lines.append(
            f"   {escape(acc.source)}: {accuracy_bar(acc.accuracy)} {acc.accuracy}% ({acc.correct}/{acc.total})"
        )

    lines.append("")
    lines.append(f"<b>Month statistics ({escape(month)}):</b>")
    lines.append(f"   Total predictions: {len(summaries)}")
    graded = [s for s in summaries if s.result is not None]
    correct = [s for s in graded if s.result == PredictionOutcome.CORRECT]
    incorrect = [s for s in graded if s.result == PredictionOutcome.INCORRECT]
    if graded:
        lines.append(f"   Correct predictions: {len(correct)}")
        lines.append(f"   Accuracy: {round_half_up(100 * len(correct) / len(graded))}%")

    # max() keeps the first of equal confidences, so earlier picks win ties
    if correct:
        best = max(correct, key=lambda s: s.average_confidence)
        lines.extend(["", "<b>Best prediction of the month:</b>"])
        lines.append(f"   {escape(best.match)}")
        lines.append(f"   Confidence: {best.average_confidence}%")
    if incorrect:
        worst = max(incorrect, key=lambda s: s.average_confidence)
        lines.extend(["", "<b>Worst prediction of the month:</b>"])
        lines.append(f"   {escape(worst.match)}")
        lines.append(f"   Confidence: {worst.average_confidence}%")
    return "\n".join(lines)
