"""
Async HTTP client shared by the prediction sources and the Telegram notifier.
One retry policy for every outbound call: 429, 5xx, timeouts and connection
errors are retried; other 4xx responses fail at once.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import httpx

from shared.utils.logging import get_logger
from shared.utils.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS

logger = get_logger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_AFTER_S = 10.0


def _retry_delay(attempt: int, response: Optional[httpx.Response] = None) -> float:
    """Honour Retry-After on 429, otherwise back off linearly."""
    if response is not None and response.status_code == 429:
        try:
            return min(float(response.headers.get("Retry-After", "2")), MAX_RETRY_AFTER_S)
        except ValueError:
            return 2.0
    return 1.0 * attempt


class ProviderHTTPClient:
    """
    Thin httpx.AsyncClient wrapper bound to one site or API.

    Args:
        provider_name: Label used in logs and metrics ("Forebet", "telegram").
        base_url: Root URL; request paths are relative to it.
        headers: Sent with every request (User-Agent, API keys).
        timeout_s: Read timeout per attempt.
        max_retries: Total attempts per request (at least one).
        transport: Custom transport, e.g. httpx.MockTransport in tests.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float = 10.0,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._timeout = timeout_s
        self._attempts = max(1, max_retries)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderHTTPClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: dict[str, Any] | None = None) -> httpx.Response:
        return await self.request("POST", path, json=json)

    async def get_text(self, path: str, params: dict[str, Any] | None = None) -> str:
        """GET a page body (HTML scrapers)."""
        return (await self.get(path, params=params)).text

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET and decode JSON. Raises ValueError on a body that is not JSON."""
        return (await self.get(path, params=params)).json()

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send one request with retries.

        Raises:
            httpx.HTTPStatusError: Non-retryable status, or retryable status on the last attempt.
            httpx.TransportError: Timeout or connection failure on the last attempt.
        """
        if self._client is None:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        for attempt in range(1, self._attempts + 1):
            last_attempt = attempt == self._attempts
            started = time.perf_counter()
            status = "error"
            try:
                resp = await self._client.request(method, path, params=params, json=json)
                status = str(resp.status_code)
                if resp.status_code in RETRYABLE_STATUS and not last_attempt:
                    logger.warning(
                        "provider_retryable_status",
                        provider=self._provider,
                        path=path,
                        status=resp.status_code,
                        attempt=attempt,
                    )
                    await asyncio.sleep(_retry_delay(attempt, resp))
                    continue
                resp.raise_for_status()
                return resp
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "provider_http_error",
                    provider=self._provider,
                    path=path,
                    status=exc.response.status_code,
                )
                raise
            except httpx.TransportError as exc:
                status = "timeout" if isinstance(exc, httpx.TimeoutException) else "error"
                logger.warning(
                    "provider_request_failed",
                    provider=self._provider,
                    path=path,
                    error=repr(exc),
                    attempt=attempt,
                )
                if last_attempt:
                    raise
                await asyncio.sleep(_retry_delay(attempt))
            finally:
                PROVIDER_REQUESTS.labels(provider=self._provider, status=status).inc()
                PROVIDER_LATENCY.labels(provider=self._provider).observe(time.perf_counter() - started)

        raise RuntimeError(f"{self._provider}: request loop exited without a response")
