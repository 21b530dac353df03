"""Delivery channels — the "send one message to one recipient" capability."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ParseMode
from telegram.error import TelegramError

from queue_notifier import messages
from queue_notifier.errors.channel_errors import DeliveryError

if TYPE_CHECKING:
    from telegram import Bot

logger = logging.getLogger(__name__)


class DeliveryChannel(Protocol):
    """Sends a message to one recipient or raises ``DeliveryError``."""

    async def send(self, recipient_id: str, text: str, *, rich: bool = True) -> None: ...


class TelegramDeliveryChannel:
    """Delivers broadcasts through the Telegram Bot API.

    Every message carries a single URL button leading to the game site.
    """

    def __init__(self, bot: Bot, *, site_url: str) -> None:
        self._bot = bot
        self._keyboard = InlineKeyboardMarkup(
            [[InlineKeyboardButton(messages.JOIN_BUTTON, url=site_url)]],
        )

    async def send(self, recipient_id: str, text: str, *, rich: bool = True) -> None:
        """Send *text* to the chat *recipient_id*.

        Raises:
            DeliveryError: If the Bot API rejects the message or the request fails.
        """
        try:
            await self._bot.send_message(
                chat_id=recipient_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN if rich else None,
                reply_markup=self._keyboard,
            )
        except TelegramError as exc:
            raise DeliveryError(recipient_id, str(exc)) from exc
