"""
Digest service: one publishing run end to end.
collect -> consolidate -> rank -> record history -> format -> publish.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional

import structlog

from shared.models.domain import ConsolidatedMatch
from shared.models.enums import ReportMode
from shared.utils.logging import get_logger
from shared.utils.metrics import CONSOLIDATED_MATCHES, DIGEST_RUNS, PUBLISHED_MATCHES

from consensus.collector import SourceCollector
from consensus.engine import consolidate
from consensus.formatter import MessageFormatter, render_error, render_no_predictions
from consensus.ranking import RankingFilter
from consensus.statistics import StatisticsStore, summarize
from notifier.base import NotificationSink

logger = get_logger(__name__)


@dataclass
class DigestResult:
    records: int = 0
    consolidated: int = 0
    published: int = 0
    messages_sent: int = 0
    outcome: str = "published"


class DigestService:
    """
    Wires the collaborators for one run. Threshold, report mode and size
    arrive through the ranking filter, formatter and constructor arguments.
    """

    def __init__(
        self,
        collector: SourceCollector,
        ranking: RankingFilter,
        formatter: MessageFormatter,
        sink: NotificationSink,
        statistics: Optional[StatisticsStore] = None,
        mode: ReportMode = ReportMode.FULL,
        top_n: int = 5,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._collector = collector
        self._ranking = ranking
        self._formatter = formatter
        self._sink = sink
        self._statistics = statistics
        self._mode = mode
        self._top_n = top_n
        self._clock = clock

    async def run_once(self, report_date: Optional[date] = None) -> DigestResult:
        """
        Publish one digest. Errors are reported to the channel and re-raised
        so the caller's loop can log them and keep going.
        """
        now = self._clock()
        report_date = report_date or now.date()
        with structlog.contextvars.bound_contextvars(report_date=report_date.isoformat()):
            logger.info("digest_run_started", mode=self._mode.value)
            try:
                result = await self._run(report_date, now)
            except Exception as e:
                DIGEST_RUNS.labels(outcome="failed").inc()
                logger.exception("digest_run_failed", error=str(e))
                await self._send_error(e)
                raise
            return self._finish(result)

    def _finish(self, result: DigestResult) -> DigestResult:
        DIGEST_RUNS.labels(outcome=result.outcome).inc()
        logger.info(
            "digest_run_finished",
            outcome=result.outcome,
            records=result.records,
            consolidated=result.consolidated,
            published=result.published,
            messages=result.messages_sent,
        )
        return result

    async def _run(self, report_date: date, now: datetime) -> DigestResult:
        records = await self._collector.collect()
        matches = consolidate(records)
        ranked = self._ranking.rank(matches)
        CONSOLIDATED_MATCHES.set(len(matches))
        PUBLISHED_MATCHES.set(len(ranked))
        result = DigestResult(records=len(records), consolidated=len(matches), published=len(ranked))

        if self._statistics is not None and ranked:
            await self._record_history(ranked, now)

        text = self._formatter.format(ranked, mode=self._mode, top_n=self._top_n, report_date=report_date)
        if text is None:
            logger.warning("digest_nothing_to_publish", records=len(records), consolidated=len(matches))
            await self._sink.send_message(render_no_predictions(report_date))
            result.messages_sent = 1
            result.outcome = "empty"
            return result

        result.messages_sent = await self._sink.send_long_message(text)
        return result

    async def _record_history(self, ranked: list[ConsolidatedMatch], now: datetime) -> None:
        """History is best effort; a store outage never blocks publishing."""
        try:
            await self._statistics.record_summaries(summarize(ranked, now))
        except Exception as e:
            logger.exception("statistics_record_failed", matches=len(ranked), error=str(e))

    async def _send_error(self, error: Exception) -> None:
        try:
            await self._sink.send_message(render_error(error))
        except Exception as notify_error:
            logger.error("digest_error_notice_failed", error=str(notify_error))
