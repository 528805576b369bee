"""
Lightweight metrics collection for Matchday Consensus.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
SOURCE_FETCHES = Counter(
    "mc_source_fetches_total",
    "Total source fetch attempts",
    ["source", "status"],
)
SOURCE_RECORDS = Counter(
    "mc_source_records_total",
    "Match records returned by each source",
    ["source"],
)
PROVIDER_REQUESTS = Counter(
    "mc_provider_requests_total",
    "Total outbound HTTP requests",
    ["provider", "status"],
)
DIGEST_RUNS = Counter(
    "mc_digest_runs_total",
    "Digest runs by outcome",
    ["outcome"],
)
NOTIFICATIONS_SENT = Counter(
    "mc_notifications_sent_total",
    "Messages delivered to the notification channel",
    ["kind"],
)

# ── Histograms ──────────────────────────────────────────────────────────
PROVIDER_LATENCY = Histogram(
    "mc_provider_latency_seconds",
    "Outbound HTTP request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
SOURCE_FETCH_LATENCY = Histogram(
    "mc_source_fetch_seconds",
    "End-to-end fetch and parse time per source",
    ["source"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
CONSOLIDATED_MATCHES = Gauge(
    "mc_consolidated_matches",
    "Matches produced by the last consolidation run",
)
PUBLISHED_MATCHES = Gauge(
    "mc_published_matches",
    "Matches that passed the confidence threshold in the last run",
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        histogram.labels(**labels).observe(elapsed)


def start_metrics_server(port: int, enabled: bool = True) -> None:
    """Start the Prometheus metrics HTTP server."""
    if not enabled:
        return
    try:
        start_http_server(port)
        logger.info("metrics_server_started", port=port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=port)
