"""
Redis connection manager for Matchday Consensus.
Provides the async connection pool, key namespaces, and the small set of
helpers the statistics store and the digest scheduler need.
"""
from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import Settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Key namespaces ──────────────────────────────────────────────────────
SUMMARY_HISTORY_KEY = "stats:summaries:{month}"
SOURCE_OUTCOME_KEY = "stats:source:{source}"
SOURCE_INDEX_KEY = "stats:sources"
RUN_LOCK_KEY = "lock:digest:{slot}"


def _fmt(template: str, **kwargs: Any) -> str:
    return template.format(**kwargs)


class RedisManager:
    """Manages async Redis connection pool and provides typed helpers."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pool: Optional[Redis] = None

    async def connect(self) -> None:
        """Initialize the connection pool."""
        self._pool = aioredis.from_url(
            self._settings.redis_url_str,
            max_connections=self._settings.redis_max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=True,
        )
        # Verify
        await self._pool.ping()
        logger.info("redis_connected", url=self._settings.redis_url_safe_log)

    async def disconnect(self) -> None:
        """Graceful shutdown."""
        if self._pool:
            await self._pool.aclose()
            self._pool = None
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._pool is None:
            raise RuntimeError("RedisManager not connected. Call connect() first.")
        return self._pool

    # ── Prediction history ──────────────────────────────────────────────
    async def append_summary(self, month: str, payload: str, ttl_s: int) -> int:
        """Append one JSON summary to the month's history list. Returns new length."""
        key = _fmt(SUMMARY_HISTORY_KEY, month=month)
        pipe = self.client.pipeline(transaction=True)
        pipe.rpush(key, payload)
        pipe.expire(key, ttl_s)
        results = await pipe.execute()
        return int(results[0])

    async def read_summaries(self, month: str) -> list[str]:
        key = _fmt(SUMMARY_HISTORY_KEY, month=month)
        return await self.client.lrange(key, 0, -1)

    # ── Source accuracy ─────────────────────────────────────────────────
    async def record_source_outcome(self, source: str, correct: bool) -> None:
        """Increment the total (and correct, when applicable) counters for a source."""
        key = _fmt(SOURCE_OUTCOME_KEY, source=source)
        pipe = self.client.pipeline(transaction=True)
        pipe.sadd(SOURCE_INDEX_KEY, source)
        pipe.hincrby(key, "total", 1)
        pipe.hincrby(key, "correct", 1 if correct else 0)
        await pipe.execute()

    async def get_source_outcomes(self) -> dict[str, dict[str, int]]:
        """Return {source: {"correct": n, "total": m}} for every known source."""
        sources = sorted(await self.client.smembers(SOURCE_INDEX_KEY))
        result: dict[str, dict[str, int]] = {}
        for source in sources:
            raw = await self.client.hgetall(_fmt(SOURCE_OUTCOME_KEY, source=source))
            result[source] = {
                "correct": int(raw.get("correct", 0)),
                "total": int(raw.get("total", 0)),
            }
        return result

    # ── Run lock ────────────────────────────────────────────────────────
    async def try_acquire_run_lock(self, slot: str, instance_id: str, ttl_s: int = 3600) -> bool:
        """Claim a scheduled digest slot with SET NX so only one instance publishes it."""
        key = _fmt(RUN_LOCK_KEY, slot=slot)
        return bool(await self.client.set(key, instance_id, nx=True, ex=ttl_s))
