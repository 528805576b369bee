"""
Builds source adapter instances from configuration.
"""
from __future__ import annotations

from typing import Sequence

import httpx

from shared.config import Settings
from shared.utils.logging import get_logger

from consensus.sources.api_football import ApiFootballSource
from consensus.sources.base import SourceAdapter
from consensus.sources.betbrain import BetbrainSource
from consensus.sources.escored import EscoredSource
from consensus.sources.forebet import ForebetSource

logger = get_logger(__name__)

SOURCE_TYPES: dict[str, type[SourceAdapter]] = {
    "forebet": ForebetSource,
    "betbrain": BetbrainSource,
    "escored": EscoredSource,
    "api_football": ApiFootballSource,
}


def build_sources(
    names: Sequence[str],
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[SourceAdapter]:
    """One fresh adapter per enabled name, in configured order. Unknown names are skipped."""
    common = {
        "timeout_s": settings.provider_request_timeout_s,
        "max_retries": settings.provider_max_retries,
        "user_agent": settings.user_agent,
        "transport": transport,
    }
    adapters: list[SourceAdapter] = []
    for raw_name in names:
        name = raw_name.strip().lower()
        cls = SOURCE_TYPES.get(name)
        if cls is None:
            logger.warning("unknown_source_skipped", source=raw_name)
            continue
        if cls is ApiFootballSource:
            adapters.append(ApiFootballSource(
                api_key=settings.api_football_key,
                api_host=settings.api_football_host,
                **common,
            ))
        else:
            adapters.append(cls(**common))
    return adapters
