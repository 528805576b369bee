"""
Daily digest schedule.
Runs the digest at fixed local times; each run is independent of the last.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

from consensus.service import DigestService

logger = get_logger(__name__)


def parse_send_time(value: str) -> time:
    """'07:00' -> time(7, 0). Raises ValueError on anything else."""
    hours, _, minutes = value.strip().partition(":")
    return time(int(hours), int(minutes or 0))


def next_run_at(now: datetime, send_times: Sequence[str], tz: ZoneInfo) -> datetime:
    """Earliest configured local time strictly after now (timezone-aware result)."""
    if not send_times:
        raise ValueError("at least one send time is required")
    local_now = now.astimezone(tz)
    candidates = []
    for day_offset in (0, 1):
        day = local_now.date() + timedelta(days=day_offset)
        for raw in send_times:
            candidate = datetime.combine(day, parse_send_time(raw), tzinfo=tz)
            if candidate > local_now:
                candidates.append(candidate)
    return min(candidates)


def slot_id(run_at: datetime) -> str:
    return run_at.strftime("%Y-%m-%dT%H:%M")


async def run_schedule_loop(
    service: DigestService,
    send_times: Sequence[str],
    timezone_name: str,
    redis: Optional[RedisManager] = None,
    instance_id: str = "",
    lock_ttl_s: int = 3600,
) -> None:
    """
    Sleep until the next slot, run the digest, repeat. With Redis, a slot is
    claimed with a lock first so several replicas publish it only once.
    """
    tz = ZoneInfo(timezone_name)
    last_slot: Optional[str] = None
    while True:
        run_at = next_run_at(datetime.now(tz), send_times, tz)
        delay = max(0.0, (run_at - datetime.now(tz)).total_seconds())
        logger.info("digest_next_run", run_at=run_at.isoformat(), delay_s=round(delay))
        await asyncio.sleep(delay)

        slot = slot_id(run_at)
        if slot == last_slot:
            # Woke before the slot boundary and picked the same slot again
            await asyncio.sleep(1.0)
            continue
        last_slot = slot
        try:
            if redis is not None and not await redis.try_acquire_run_lock(slot, instance_id, lock_ttl_s):
                logger.info("digest_slot_taken", slot=slot)
                continue
            await service.run_once(report_date=run_at.date())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("digest_slot_error", slot=slot, error=str(e))
