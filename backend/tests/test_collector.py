"""
Tests for concurrent source collection and the per-source circuit breaker.

Run: pytest backend/tests/test_collector.py -v
"""
from __future__ import annotations

import asyncio

import pytest

from shared.models.domain import MatchRecord
from shared.utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpen, CircuitState

from consensus.collector import SourceCollector
from consensus.sources.base import SourceAdapter, SourceFetchError


class FakeSource(SourceAdapter):
    """Scripted adapter: returns records, or raises the configured error."""

    def __init__(self, name: str, records=(), error: Exception | None = None, delay: float = 0.0) -> None:
        super().__init__()
        self._name = name
        self._records = list(records)
        self._error = error
        self._delay = delay
        self.calls = 0

    @property
    def source_name(self) -> str:
        return self._name

    @property
    def base_url(self) -> str:
        return "https://example.invalid"

    async def fetch_records(self) -> list[MatchRecord]:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._records)


def _rec(source: str, home: str) -> MatchRecord:
    return MatchRecord(source_name=source, home_team=home, away_team="Away", prediction_label="1", confidence_score=70)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ── Collector ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_collect_concatenates_in_adapter_order() -> None:
    slow = FakeSource("A", [_rec("A", "H1")], delay=0.02)
    fast = FakeSource("B", [_rec("B", "H2"), _rec("B", "H3")])
    records = await SourceCollector([slow, fast]).collect()
    assert [(r.source_name, r.home_team) for r in records] == [("A", "H1"), ("B", "H2"), ("B", "H3")]


@pytest.mark.asyncio
async def test_failed_source_contributes_nothing() -> None:
    ok = FakeSource("A", [_rec("A", "H1")])
    broken = FakeSource("B", error=SourceFetchError("B", "http: 503"))
    crashed = FakeSource("C", error=KeyError("boom"))
    records = await SourceCollector([ok, broken, crashed]).collect()
    assert [r.source_name for r in records] == ["A"]


@pytest.mark.asyncio
async def test_all_sources_failing_yields_empty_list() -> None:
    sources = [FakeSource(n, error=SourceFetchError(n, "timeout")) for n in "AB"]
    assert await SourceCollector(sources).collect() == []


@pytest.mark.asyncio
async def test_no_sources() -> None:
    assert await SourceCollector([]).collect() == []


@pytest.mark.asyncio
async def test_open_circuit_skips_source_until_recovery() -> None:
    broken = FakeSource("B", error=SourceFetchError("B", "http: 500"))
    collector = SourceCollector([broken], failure_threshold=2, recovery_timeout_s=3600)

    await collector.collect()
    await collector.collect()
    assert collector.breaker("B").state == CircuitState.OPEN
    assert broken.calls == 2

    assert await collector.collect() == []
    assert broken.calls == 2


@pytest.mark.asyncio
async def test_cancellation_is_not_swallowed() -> None:
    cancelled = FakeSource("A", error=asyncio.CancelledError())
    with pytest.raises(asyncio.CancelledError):
        await SourceCollector([cancelled]).collect()


def test_source_names() -> None:
    collector = SourceCollector([FakeSource("Forebet"), FakeSource("eScored")])
    assert collector.source_names == ["Forebet", "eScored"]


# ── CircuitBreaker ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_breaker_opens_after_threshold_and_probes_after_recovery() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker("src", failure_threshold=2, recovery_timeout_s=60, clock=clock)

    async def fail() -> None:
        raise SourceFetchError("src", "down")

    async def succeed() -> str:
        return "ok"

    for _ in range(2):
        with pytest.raises(SourceFetchError):
            await breaker.call(fail)
    assert breaker.state == CircuitState.OPEN

    with pytest.raises(CircuitBreakerOpen) as exc_info:
        await breaker.call(succeed)
    assert exc_info.value.retry_after == pytest.approx(60)

    clock.now += 61
    assert breaker.state == CircuitState.HALF_OPEN
    assert await breaker.call(succeed) == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.stats["failure_count"] == 0


@pytest.mark.asyncio
async def test_failed_probe_reopens_circuit() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker("src", failure_threshold=1, recovery_timeout_s=10, clock=clock)

    async def fail() -> None:
        raise SourceFetchError("src", "down")

    with pytest.raises(SourceFetchError):
        await breaker.call(fail)
    clock.now += 11
    with pytest.raises(SourceFetchError):
        await breaker.call(fail)
    assert breaker.state == CircuitState.OPEN


@pytest.mark.asyncio
async def test_cancelled_probe_allows_another_probe() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker("src", failure_threshold=1, recovery_timeout_s=10, clock=clock)

    async def fail() -> None:
        raise SourceFetchError("src", "down")

    async def cancelled() -> None:
        raise asyncio.CancelledError()

    async def succeed() -> str:
        return "ok"

    with pytest.raises(SourceFetchError):
        await breaker.call(fail)
    clock.now += 11
    with pytest.raises(asyncio.CancelledError):
        await breaker.call(cancelled)

    assert breaker.state == CircuitState.HALF_OPEN
    assert await breaker.call(succeed) == "ok"
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_success_resets_failure_count() -> None:
    breaker = CircuitBreaker("src", failure_threshold=2)

    async def fail() -> None:
        raise SourceFetchError("src", "down")

    async def succeed() -> int:
        return 1

    with pytest.raises(SourceFetchError):
        await breaker.call(fail)
    await breaker.call(succeed)
    with pytest.raises(SourceFetchError):
        await breaker.call(fail)
    assert breaker.state == CircuitState.CLOSED
