"""
Tests for message chunking and the Telegram notifier.

Run: pytest backend/tests/test_notifier.py -v
"""
from __future__ import annotations

import json

import httpx
import pytest

from notifier.base import split_message
from notifier.telegram import TelegramError, TelegramNotifier


# ── split_message ───────────────────────────────────────────────────────

def test_short_message_is_one_part() -> None:
    assert split_message("hello\nworld", 100) == ["hello\nworld"]


def test_split_on_line_boundaries() -> None:
    text = "\n".join(["a" * 4] * 5)
    parts = split_message(text, 9)
    assert parts == ["aaaa\naaaa", "aaaa\naaaa", "aaaa"]
    assert all(len(p) <= 9 for p in parts)


def test_overlong_line_is_hard_split() -> None:
    parts = split_message("x" * 10 + "\nend", 4)
    assert parts == ["xxxx", "xxxx", "xx", "end"]


def test_split_keeps_all_text() -> None:
    text = "\n".join(f"line {i}" for i in range(200))
    parts = split_message(text, 64)
    assert "\n".join(parts) == text


def test_split_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        split_message("x", 0)


def test_hard_split_never_cuts_inside_a_tag() -> None:
    parts = split_message("abcd<b>xy</b>", 6)
    assert parts == ["abcd", "<b>xy", "</b>"]


def test_hard_split_never_cuts_inside_an_entity() -> None:
    parts = split_message("Brighton &amp; Hove", 12)
    assert parts == ["Brighton ", "&amp; Hove"]
    assert "".join(parts) == "Brighton &amp; Hove"


# ── TelegramNotifier ────────────────────────────────────────────────────

class FakeBotApi:
    """Records sendMessage payloads and answers like the Bot API."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.ok:
            return httpx.Response(200, json={"ok": False, "description": "Bad Request: chat not found"})
        if request.url.path.endswith("/getMe"):
            return httpx.Response(200, json={"ok": True, "result": {"id": 1, "username": "consensus_bot"}})
        return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.requests)}})

    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


async def _notifier(api: FakeBotApi, max_length: int = 4096) -> TelegramNotifier:
    notifier = TelegramNotifier(
        token="123:abc",
        chat_id="-100",
        max_length=max_length,
        chunk_delay_s=0,
        transport=httpx.MockTransport(api),
    )
    await notifier.start()
    return notifier


@pytest.mark.asyncio
async def test_send_message_posts_html() -> None:
    api = FakeBotApi()
    notifier = await _notifier(api)
    try:
        message = await notifier.send_message("<b>hi</b>")
    finally:
        await notifier.close()

    assert message == {"message_id": 1}
    assert api.requests[0].url.path == "/bot123:abc/sendMessage"
    assert api.payloads()[0] == {
        "chat_id": "-100",
        "text": "<b>hi</b>",
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }


@pytest.mark.asyncio
async def test_send_long_message_sends_parts_in_order() -> None:
    api = FakeBotApi()
    notifier = await _notifier(api, max_length=10)
    try:
        sent = await notifier.send_long_message("first line\nsecond\nthird")
    finally:
        await notifier.close()

    assert sent == 3
    assert [p["text"] for p in api.payloads()] == ["first line", "second", "third"]


@pytest.mark.asyncio
async def test_api_error_raises_telegram_error() -> None:
    notifier = await _notifier(FakeBotApi(ok=False))
    try:
        with pytest.raises(TelegramError) as exc_info:
            await notifier.send_message("hi")
    finally:
        await notifier.close()
    assert exc_info.value.method == "sendMessage"
    assert "chat not found" in exc_info.value.description


@pytest.mark.asyncio
async def test_get_me() -> None:
    notifier = await _notifier(FakeBotApi())
    try:
        assert (await notifier.get_me())["username"] == "consensus_bot"
    finally:
        await notifier.close()


@pytest.mark.asyncio
async def test_get_me_failure_returns_none() -> None:
    notifier = await _notifier(FakeBotApi(ok=False))
    try:
        assert await notifier.get_me() is None
    finally:
        await notifier.close()
