"""Bot — Telegram command front end."""

from __future__ import annotations

from queue_notifier.bot.handlers import TelegramFrontend

__all__ = ["TelegramFrontend"]
