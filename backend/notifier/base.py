"""
Notification sink interface and message chunking.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

MAX_ENTITY_LENGTH = 10


def _hard_cut(line: str, max_length: int) -> int:
    """
    Cut position for a line longer than max_length that does not fall inside
    an HTML tag ('<b>') or entity ('&amp;'). Falls back to max_length when a
    tag alone is longer than the limit.
    """
    cut = max_length
    head = line[:cut]
    tag_start = head.rfind("<")
    if tag_start > head.rfind(">"):
        cut = tag_start
    amp = line.rfind("&", 0, cut)
    if amp != -1 and ";" not in line[amp:cut]:
        end = line.find(";", amp)
        if end != -1 and end - amp <= MAX_ENTITY_LENGTH:
            cut = amp
    return cut if cut > 0 else max_length


def split_message(text: str, max_length: int = 4096) -> list[str]:
    """
    Split text into chunks of at most max_length characters on line boundaries.
    A single line longer than max_length is hard-split outside HTML tags and
    entities, so no chunk ends halfway through markup Telegram would reject.
    """
    if max_length < 1:
        raise ValueError("max_length must be positive")
    parts: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > max_length:
            if current:
                parts.append(current)
                current = ""
            cut = _hard_cut(line, max_length)
            parts.append(line[:cut])
            line = line[cut:]
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > max_length:
            parts.append(current)
            current = line
        else:
            current = candidate
    if current:
        parts.append(current)
    return parts


class NotificationSink(ABC):
    """Delivers preformatted text to a channel."""

    @abstractmethod
    async def send_message(self, text: str) -> Any:
        pass

    @abstractmethod
    async def send_long_message(self, text: str) -> int:
        """Send text in as many messages as needed. Returns the number sent."""
        pass
