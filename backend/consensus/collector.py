"""
Fan-out/fan-in over all enabled sources.
Every source is fetched concurrently; the run waits for all of them and any
failure (exception, open circuit) counts as an empty contribution.
"""
from __future__ import annotations

import asyncio
from typing import Sequence

from shared.models.domain import MatchRecord
from shared.utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_FETCH_LATENCY, SOURCE_FETCHES, SOURCE_RECORDS, atrack_latency

from consensus.sources.base import SourceAdapter, SourceFetchError

logger = get_logger(__name__)


class SourceCollector:
    """Collects records from every adapter, one circuit breaker per source."""

    def __init__(
        self,
        sources: Sequence[SourceAdapter],
        failure_threshold: int = 3,
        recovery_timeout_s: float = 3600.0,
    ) -> None:
        self._sources = list(sources)
        self._breakers = {
            s.source_name: CircuitBreaker(
                s.source_name,
                failure_threshold=failure_threshold,
                recovery_timeout_s=recovery_timeout_s,
            )
            for s in self._sources
        }

    @property
    def source_names(self) -> list[str]:
        return [s.source_name for s in self._sources]

    def breaker(self, source_name: str) -> CircuitBreaker:
        return self._breakers[source_name]

    async def _fetch_one(self, source: SourceAdapter) -> list[MatchRecord]:
        name = source.source_name
        async with atrack_latency(SOURCE_FETCH_LATENCY, source=name):
            records = await self._breakers[name].call(source.fetch_records)
        SOURCE_FETCHES.labels(source=name, status="ok" if records else "empty").inc()
        SOURCE_RECORDS.labels(source=name).inc(len(records))
        return records

    async def collect(self) -> list[MatchRecord]:
        """Records from all sources concatenated in adapter order."""
        results = await asyncio.gather(
            *(self._fetch_one(s) for s in self._sources),
            return_exceptions=True,
        )

        records: list[MatchRecord] = []
        counts: dict[str, int] = {}
        for source, result in zip(self._sources, results):
            name = source.source_name
            if isinstance(result, CircuitBreakerOpen):
                SOURCE_FETCHES.labels(source=name, status="skipped").inc()
                logger.warning("source_skipped_circuit_open", source=name, retry_after_s=round(result.retry_after))
                counts[name] = 0
                continue
            if isinstance(result, SourceFetchError):
                SOURCE_FETCHES.labels(source=name, status="error").inc()
                logger.warning("source_fetch_failed", source=name, reason=result.reason)
                counts[name] = 0
                continue
            if isinstance(result, Exception):
                SOURCE_FETCHES.labels(source=name, status="error").inc()
                logger.error("source_fetch_crashed", source=name, error=repr(result))
                counts[name] = 0
                continue
            if isinstance(result, BaseException):
                raise result
            counts[name] = len(result)
            records.extend(result)

        logger.info("sources_collected", total=len(records), per_source=counts)
        return records
