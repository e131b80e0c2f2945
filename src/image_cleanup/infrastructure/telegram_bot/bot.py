"""TelegramNotifier — NotifierPort implementation using python-telegram-bot."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram import Bot

from image_cleanup.domain.errors import NotificationError

if TYPE_CHECKING:
    from image_cleanup.domain.ports import NotifierPort

logger = logging.getLogger(__name__)

# Telegram rejects messages longer than this
MAX_MESSAGE_LENGTH: int = 4096


class TelegramNotifier:
    """Send cleanup summaries to a single Telegram chat via the Bot API.

    Implements the NotifierPort protocol.
    """

    def __init__(self, token: str, chat_id: str, bot: Bot | None = None) -> None:
        self._bot = bot if bot is not None else Bot(token=token)
        self._chat_id = chat_id

    @property
    def chat_id(self) -> str:
        """The chat that receives notifications."""
        return self._chat_id

    async def send(self, message: str) -> None:
        """Send ``message``, truncated to Telegram's length limit."""
        if len(message) > MAX_MESSAGE_LENGTH:
            message = message[: MAX_MESSAGE_LENGTH - 1] + "…"
        try:
            await self._bot.send_message(chat_id=self._chat_id, text=message)
        except Exception as exc:
            raise NotificationError(f"Failed to send telegram message: {exc}") from exc

        logger.info("Sent telegram notification (chat_id=%s)", self._chat_id)


class LogNotifier:
    """Fallback notifier used when Telegram is not configured; logs the message."""

    async def send(self, message: str) -> None:
        logger.info("Notification (Telegram disabled):\n%s", message)


if TYPE_CHECKING:
    _: NotifierPort = TelegramNotifier(token="", chat_id="0")
    _log: NotifierPort = LogNotifier()
