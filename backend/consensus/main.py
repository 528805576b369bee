"""
Digest service entrypoint.
Publishes the consolidated predictions digest once (--once) or on the daily
schedule until SIGINT/SIGTERM.
"""
from __future__ import annotations

import argparse
import asyncio
import signal
from datetime import datetime, timezone
from typing import Optional, Sequence

from shared.config import Settings, StatisticsBackend, get_settings
from shared.models.enums import ReportMode
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server
from shared.utils.redis_manager import RedisManager

from consensus.collector import SourceCollector
from consensus.config import DigestSettings, get_digest_settings
from consensus.formatter import MessageFormatter, render_startup, render_statistics_report
from consensus.ranking import RankingFilter
from consensus.schedule import run_schedule_loop
from consensus.service import DigestService
from consensus.sources.registry import build_sources
from consensus.statistics import InMemoryStatisticsStore, RedisStatisticsStore, StatisticsStore
from notifier.base import NotificationSink
from notifier.telegram import TelegramNotifier

logger = get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="matchday-consensus", description="Consolidated football predictions digest")
    parser.add_argument("--once", action="store_true", help="publish one digest and exit")
    parser.add_argument("--stats", action="store_true", help="publish the monthly statistics report and exit")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ReportMode],
        default=None,
        help="report layout (overrides MC_DIGEST_REPORT_MODE)",
    )
    return parser.parse_args(argv)


def build_service(
    settings: Settings,
    digest_settings: DigestSettings,
    sink: NotificationSink,
    statistics: Optional[StatisticsStore] = None,
    mode: Optional[ReportMode] = None,
) -> DigestService:
    """Wire sources, collector, ranking and formatter from configuration."""
    sources = build_sources(digest_settings.sources, settings)
    collector = SourceCollector(
        sources,
        failure_threshold=digest_settings.circuit_failure_threshold,
        recovery_timeout_s=digest_settings.circuit_recovery_s,
    )
    formatter = MessageFormatter(
        max_records=digest_settings.max_records,
        min_confidence=digest_settings.min_confidence,
        source_names=collector.source_names,
    )
    return DigestService(
        collector=collector,
        ranking=RankingFilter(digest_settings.min_confidence),
        formatter=formatter,
        sink=sink,
        statistics=statistics,
        mode=mode or digest_settings.report_mode,
        top_n=digest_settings.top_n,
    )


async def publish_statistics(statistics: StatisticsStore, sink: NotificationSink) -> None:
    month = datetime.now(timezone.utc).strftime("%Y-%m")
    report = render_statistics_report(await statistics.source_accuracy(), await statistics.summaries(month), month)
    await sink.send_long_message(report)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    digest_settings = get_digest_settings()
    setup_logging("digest", extra_context={"instance_id": settings.instance_id} if settings.instance_id else None)

    if not settings.telegram_configured:
        logger.error("telegram_not_configured", hint="set MC_TELEGRAM_BOT_TOKEN and MC_TELEGRAM_CHAT_ID")
        return 1

    start_metrics_server(settings.metrics_port, enabled=settings.metrics_enabled)

    redis: Optional[RedisManager] = None
    statistics: StatisticsStore
    if settings.statistics_backend == StatisticsBackend.REDIS:
        redis = RedisManager(settings)
        try:
            await redis.connect()
        except Exception as e:
            logger.exception("startup_connect_failed", error=str(e))
            raise
        statistics = RedisStatisticsStore(redis, settings.statistics_history_ttl_s)
    else:
        statistics = InMemoryStatisticsStore()

    notifier = TelegramNotifier(
        token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        api_url=settings.telegram_api_url,
        max_length=settings.telegram_max_message_length,
        chunk_delay_s=settings.telegram_chunk_delay_s,
        timeout_s=settings.provider_request_timeout_s,
    )
    await notifier.start()
    mode = ReportMode(args.mode) if args.mode else None
    service = build_service(settings, digest_settings, notifier, statistics, mode)

    try:
        if args.stats:
            await publish_statistics(statistics, notifier)
            return 0
        if args.once:
            await service.run_once()
            return 0
        await _serve(service, notifier, digest_settings, settings, redis)
        return 0
    finally:
        await notifier.close()
        if redis is not None:
            await redis.disconnect()


async def _serve(
    service: DigestService,
    notifier: TelegramNotifier,
    digest_settings: DigestSettings,
    settings: Settings,
    redis: Optional[RedisManager],
) -> None:
    await notifier.get_me()
    if digest_settings.send_startup_message:
        try:
            await notifier.send_message(render_startup(digest_settings.send_times, digest_settings.timezone))
        except Exception as e:
            logger.warning("startup_message_failed", error=str(e))

    if digest_settings.run_on_startup:
        try:
            await service.run_once()
        except Exception as e:
            logger.warning("startup_run_failed", error=str(e))

    loop_task = asyncio.create_task(
        run_schedule_loop(
            service,
            digest_settings.send_times,
            digest_settings.timezone,
            redis=redis,
            instance_id=settings.instance_id,
            lock_ttl_s=digest_settings.run_lock_ttl_s,
        )
    )

    shutdown = asyncio.Event()
    loop_task.add_done_callback(lambda _: shutdown.set())

    def on_signal() -> None:
        shutdown.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            asyncio.get_running_loop().add_signal_handler(sig, on_signal)
        except NotImplementedError:
            pass

    logger.info("digest_started", send_times=digest_settings.send_times, timezone=digest_settings.timezone)
    await shutdown.wait()

    loop_task.cancel()
    try:
        await loop_task
    except asyncio.CancelledError:
        pass
    logger.info("digest_stopped")


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
