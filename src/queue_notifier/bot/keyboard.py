"""Inline keyboards shown by the settings commands."""

from __future__ import annotations

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from queue_notifier import messages
from queue_notifier.models import Category, Preferences

TOGGLE_PREFIX = "toggle_"


def toggle_data(category: Category) -> str:
    """Callback data carried by the toggle button of *category*."""
    return f"{TOGGLE_PREFIX}{category.value}"


def settings_keyboard(preferences: Preferences | None, site_url: str) -> InlineKeyboardMarkup:
    """One ✅/❌ toggle row per category, then a link to the site."""
    prefs = preferences if preferences is not None else Preferences()
    rows = [
        [
            InlineKeyboardButton(
                f"{'✅' if prefs.enabled(category) else '❌'} {messages.CATEGORY_LABELS[category]}",
                callback_data=toggle_data(category),
            )
        ]
        for category in (Category.NORMAL, Category.HIGHROOM, Category.MANUAL)
    ]
    rows.append([InlineKeyboardButton(messages.SITE_BUTTON, url=site_url)])
    return InlineKeyboardMarkup(rows)
