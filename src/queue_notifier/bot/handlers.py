"""Telegram command front end — turns chat updates into engine calls."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from telegram import BotCommand
from telegram.constants import ParseMode
from telegram.ext import CallbackQueryHandler, CommandHandler, MessageHandler, filters

from queue_notifier import messages
from queue_notifier.bot.keyboard import TOGGLE_PREFIX, settings_keyboard
from queue_notifier.models import Category

if TYPE_CHECKING:
    from telegram import Bot, Update
    from telegram.ext import Application, ContextTypes

    from queue_notifier.config.settings import BotConfig
    from queue_notifier.engine import NotifierEngine

logger = logging.getLogger(__name__)

_TOGGLE_RE = re.compile(
    rf"^{TOGGLE_PREFIX}({'|'.join(c.value for c in Category)})$",
)
_MANUAL_WORDS = frozenset({"го", "/го"})

COMMANDS = [
    BotCommand("start", "Начать работу с ботом"),
    BotCommand("notifications", "Настройки уведомлений"),
]


class TelegramFrontend:
    """Registers the bot's handlers on a python-telegram-bot ``Application``."""

    def __init__(self, engine: NotifierEngine, config: BotConfig) -> None:
        self._engine = engine
        self._site_url = config.site_url
        self._admin_ids = frozenset(config.admin_ids)

    def register(self, application: Application) -> None:
        """Attach command, callback and text handlers."""
        application.add_handler(CommandHandler(["start", "notifications"], self.on_settings_command))
        application.add_handler(CallbackQueryHandler(self.on_toggle, pattern=_TOGGLE_RE))
        application.add_handler(MessageHandler(filters.TEXT, self.on_text))
        application.add_error_handler(self.on_error)

    async def publish_commands(self, bot: Bot) -> None:
        """Publish the command list shown in Telegram clients."""
        await bot.set_my_commands(COMMANDS)

    async def on_settings_command(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """``/start`` and ``/notifications``: register and show the settings keyboard."""
        chat, user, message = update.effective_chat, update.effective_user, update.message
        if chat is None or message is None:
            return
        command = _command_name(message.text)
        username = user.username if user else None
        logger.info(
            "command command=%s userId=%s username=%s chatId=%s",
            command,
            user.id if user else None,
            username,
            chat.id,
        )

        recipient = await self._engine.on_start(chat.id, username)
        await message.reply_text(
            messages.SETTINGS_PROMPT,
            parse_mode=ParseMode.MARKDOWN,
            reply_markup=settings_keyboard(recipient.preferences, self._site_url),
        )

    async def on_toggle(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Settings keyboard button: flip one category and redraw the keyboard."""
        query, chat, user = update.callback_query, update.effective_chat, update.effective_user
        if query is None:
            return
        match = _TOGGLE_RE.match(query.data or "")
        if match is None or chat is None:
            await query.answer()
            return

        key = match.group(1)
        logger.info(
            "action action=toggle_%s userId=%s username=%s chatId=%s",
            key,
            user.id if user else None,
            user.username if user else None,
            chat.id,
        )

        settings = await self._engine.on_toggle_request(chat.id, key)
        if settings is None:
            await query.answer()
            return
        await query.edit_message_reply_markup(
            reply_markup=settings_keyboard(settings, self._site_url),
        )
        await query.answer(messages.SETTINGS_SAVED)

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Plain text: an admin writing "го" starts the manual broadcast."""
        message, user = update.message, update.effective_user
        if message is None or user is None or message.text is None:
            return
        logger.info(
            "message text=%r userId=%s username=%s chatId=%s",
            message.text,
            user.id,
            user.username,
            message.chat_id,
        )

        if message.text.strip().lower() not in _MANUAL_WORDS or user.id not in self._admin_ids:
            return

        try:
            outcome = await self._engine.on_manual_trigger(user.id)
        except Exception:
            logger.exception("broadcast_error type=manual triggeredBy=%s", user.id)
            outcome = None
        if outcome is None:
            await message.reply_text(messages.MANUAL_FAILED)
        else:
            await message.reply_text(messages.MANUAL_DONE)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log errors raised by handlers."""
        logger.error("Update %r caused error", update, exc_info=context.error)


def _command_name(text: str | None) -> str:
    """``"/start@SomeBot arg"`` -> ``"start"``."""
    if not text:
        return ""
    return text.split(maxsplit=1)[0].lstrip("/").split("@", 1)[0]
