"""Simulated per-paper chat."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable

from paper_swipe.models import ChatMessage

logger = logging.getLogger(__name__)

SENDER_USER = "user"
SENDER_AI = "ai"

REPLY_DELAY_SECONDS = 1.0
SIMULATED_REPLY = (
    "This is a simulated AI response. In production, this would be replaced with "
    "actual AI-generated responses based on the paper content."
)


def greeting_for(title: str) -> str:
    return f'Hello! I\'m your AI assistant. Ask me anything about "{title}"'


class ChatSession:
    """Message log for one paper; replies are canned after a short delay."""

    def __init__(
        self,
        paper_id: str,
        title: str,
        *,
        reply_delay_seconds: float = REPLY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.paper_id = paper_id
        self.title = title
        self.reply_delay_seconds = reply_delay_seconds
        self._sleep = sleep
        self._ids = itertools.count(1)
        self.messages: list[ChatMessage] = [self._message(greeting_for(title), SENDER_AI)]

    def _message(self, text: str, sender: str) -> ChatMessage:
        return ChatMessage(id=str(next(self._ids)), text=text, sender=sender)

    def add_user_message(self, text: str) -> ChatMessage | None:
        """Append ``text`` as a user message; blank input is ignored."""
        cleaned = text.strip()
        if not cleaned:
            return None
        message = self._message(cleaned, SENDER_USER)
        self.messages.append(message)
        return message

    async def reply(self) -> ChatMessage:
        await self._sleep(self.reply_delay_seconds)
        message = self._message(SIMULATED_REPLY, SENDER_AI)
        self.messages.append(message)
        logger.debug("Simulated reply for %s", self.paper_id)
        return message

    async def send(self, text: str) -> ChatMessage | None:
        """Send ``text`` and wait for the reply; returns None for blank input."""
        if self.add_user_message(text) is None:
            return None
        return await self.reply()


__all__ = [
    "REPLY_DELAY_SECONDS",
    "SENDER_AI",
    "SENDER_USER",
    "SIMULATED_REPLY",
    "ChatSession",
    "greeting_for",
]
