"""Tests for TelegramNotifier and LogNotifier — NotifierPort implementations."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from image_cleanup.domain.errors import NotificationError
from image_cleanup.infrastructure.telegram_bot.bot import MAX_MESSAGE_LENGTH, LogNotifier, TelegramNotifier


def _bot(side_effect: Exception | None = None) -> MagicMock:
    bot = MagicMock()
    bot.send_message = AsyncMock(side_effect=side_effect)
    return bot


class TestTelegramNotifierInit:
    def test_creates_bot_with_token(self) -> None:
        with patch("image_cleanup.infrastructure.telegram_bot.bot.Bot") as mock_bot:
            TelegramNotifier(token="test-token", chat_id="12345")
        mock_bot.assert_called_once_with(token="test-token")

    def test_injected_bot_used(self) -> None:
        with patch("image_cleanup.infrastructure.telegram_bot.bot.Bot") as mock_bot:
            notifier = TelegramNotifier(token="t", chat_id="-100123", bot=_bot())
        mock_bot.assert_not_called()
        assert notifier.chat_id == "-100123"


class TestTelegramNotifierSend:
    async def test_sends_message(self) -> None:
        bot = _bot()
        await TelegramNotifier(token="t", chat_id="42", bot=bot).send("Hello!")
        bot.send_message.assert_awaited_once_with(chat_id="42", text="Hello!")

    async def test_long_message_truncated(self) -> None:
        bot = _bot()
        await TelegramNotifier(token="t", chat_id="42", bot=bot).send("x" * (MAX_MESSAGE_LENGTH + 100))

        text = bot.send_message.call_args.kwargs["text"]
        assert len(text) == MAX_MESSAGE_LENGTH
        assert text.endswith("…")

    async def test_failure_wrapped(self) -> None:
        bot = _bot(side_effect=RuntimeError("Network error"))
        with pytest.raises(NotificationError, match="Failed to send telegram message: Network error") as exc_info:
            await TelegramNotifier(token="t", chat_id="42", bot=bot).send("Hello!")
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestLogNotifier:
    async def test_logs_message(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="image_cleanup.infrastructure.telegram_bot.bot"):
            await LogNotifier().send("Image cleanup completed")
        assert "Image cleanup completed" in caplog.text
