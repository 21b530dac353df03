"""Tests for the Telegram delivery channel — the Bot is mocked."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ParseMode
from telegram.error import Forbidden, TimedOut

from queue_notifier import messages
from queue_notifier.broadcast.channel import TelegramDeliveryChannel
from queue_notifier.errors.channel_errors import DeliveryError

_SITE = "https://dotaclassic.ru"


@pytest.fixture
def bot() -> MagicMock:
    mock = MagicMock()
    mock.send_message = AsyncMock()
    return mock


class TestTelegramDeliveryChannel:
    async def test_send(self, bot: MagicMock) -> None:
        channel = TelegramDeliveryChannel(bot, site_url=_SITE)
        await channel.send("42", "*hi*")

        kwargs = bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == "42"
        assert kwargs["text"] == "*hi*"
        assert kwargs["parse_mode"] == ParseMode.MARKDOWN
        button = kwargs["reply_markup"].inline_keyboard[0][0]
        assert button.text == messages.JOIN_BUTTON
        assert button.url == _SITE

    async def test_plain_text(self, bot: MagicMock) -> None:
        channel = TelegramDeliveryChannel(bot, site_url=_SITE)
        await channel.send("42", "plain", rich=False)
        assert bot.send_message.call_args.kwargs["parse_mode"] is None

    async def test_blocked_is_permanent(self, bot: MagicMock) -> None:
        bot.send_message.side_effect = Forbidden("Forbidden: bot was blocked by the user")
        channel = TelegramDeliveryChannel(bot, site_url=_SITE)
        with pytest.raises(DeliveryError) as info:
            await channel.send("42", "x")
        assert info.value.recipient_id == "42"
        assert info.value.permanent

    async def test_timeout_is_transient(self, bot: MagicMock) -> None:
        bot.send_message.side_effect = TimedOut()
        channel = TelegramDeliveryChannel(bot, site_url=_SITE)
        with pytest.raises(DeliveryError) as info:
            await channel.send("42", "x")
        assert not info.value.permanent
