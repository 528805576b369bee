"""
Base source interface.
Every prediction source normalizes its response to MatchRecord so the
consolidation engine never branches on where a record came from.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from shared.models.domain import MatchRecord
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

logger = get_logger(__name__)

_NUMBER_RE = re.compile(r"(\d+(?:[.,]\d+)?)")


class SourceFetchError(Exception):
    """A source could not be fetched or parsed; the collector treats it as no records."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


def extract_confidence(text: Optional[str]) -> float:
    """First number found in text, clamped to 0-100 ('72%' -> 72.0). Nothing found -> 0."""
    if not text:
        return 0.0
    match = _NUMBER_RE.search(str(text))
    if not match:
        return 0.0
    value = float(match.group(1).replace(",", "."))
    return max(0.0, min(100.0, value))


class SourceAdapter(ABC):
    """
    Base for Forebet, Betbrain, eScored and API-Football fetchers.

    Subclasses implement `fetch_records`; HTTP clients are created per fetch so
    an adapter instance holds configuration only.
    """

    def __init__(
        self,
        timeout_s: float = 10.0,
        max_retries: int = 2,
        user_agent: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout_s
        self._max_retries = max_retries
        self._user_agent = user_agent
        self._transport = transport

    @property
    @abstractmethod
    def source_name(self) -> str:
        pass

    @property
    @abstractmethod
    def base_url(self) -> str:
        pass

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._user_agent} if self._user_agent else {}

    def _http_client(self) -> ProviderHTTPClient:
        return ProviderHTTPClient(
            provider_name=self.source_name,
            base_url=self.base_url,
            headers=self._headers(),
            timeout_s=self._timeout,
            max_retries=self._max_retries,
            transport=self._transport,
        )

    def _record(self, **fields: Any) -> MatchRecord:
        return MatchRecord(source_name=self.source_name, **fields)

    @abstractmethod
    async def fetch_records(self) -> list[MatchRecord]:
        """
        Fetch today's predictions from this source.
        Timeouts, non-2xx responses and unparseable payloads raise
        SourceFetchError; an empty page is an empty list, not an error.
        """
        pass
