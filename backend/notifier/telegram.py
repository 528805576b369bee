"""
Telegram Bot API notifier.
Sends HTML-formatted messages to one chat through the plain HTTP API.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import NOTIFICATIONS_SENT

from notifier.base import NotificationSink, split_message

logger = get_logger(__name__)


class TelegramError(Exception):
    """Telegram answered with ok=false."""

    def __init__(self, method: str, description: str) -> None:
        self.method = method
        self.description = description
        super().__init__(f"Telegram {method} failed: {description}")


class TelegramNotifier(NotificationSink):
    """
    Args:
        token: Bot token from @BotFather.
        chat_id: Target chat or channel id.
        api_url: Bot API base URL.
        max_length: Telegram's per-message character limit.
        chunk_delay_s: Pause between parts of a long message.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        api_url: str = "https://api.telegram.org",
        max_length: int = 4096,
        chunk_delay_s: float = 0.5,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._chat_id = chat_id
        self._max_length = max_length
        self._chunk_delay = chunk_delay_s
        self._http = ProviderHTTPClient(
            provider_name="telegram",
            base_url=f"{api_url.rstrip('/')}/bot{token}",
            timeout_s=timeout_s,
            max_retries=2,
            transport=transport,
        )

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def _call(self, method: str, payload: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._http.post(f"/{method}", json=payload or {})
        body = resp.json()
        if not body.get("ok"):
            raise TelegramError(method, str(body.get("description", "unknown error")))
        return body.get("result")

    async def send_message(self, text: str, **options: Any) -> dict[str, Any]:
        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            **options,
        }
        try:
            message = await self._call("sendMessage", payload)
        except (httpx.HTTPError, TelegramError) as e:
            logger.error("telegram_send_failed", error=str(e))
            raise
        NOTIFICATIONS_SENT.labels(kind="message").inc()
        logger.info("telegram_message_sent", message_id=message.get("message_id"))
        return message

    async def send_long_message(self, text: str) -> int:
        parts = split_message(text, self._max_length)
        logger.info("telegram_sending_parts", parts=len(parts))
        for i, part in enumerate(parts):
            await self.send_message(part)
            if i < len(parts) - 1:
                await asyncio.sleep(self._chunk_delay)
        return len(parts)

    async def get_me(self) -> Optional[dict[str, Any]]:
        """Bot identity, or None when the API cannot be reached."""
        try:
            me = await self._call("getMe")
        except (httpx.HTTPError, TelegramError) as e:
            logger.warning("telegram_get_me_failed", error=str(e))
            return None
        logger.info("telegram_bot_identity", username=me.get("username"))
        return me
