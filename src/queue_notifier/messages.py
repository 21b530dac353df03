"""User-facing message texts (Telegram Markdown)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from queue_notifier.models import Category

if TYPE_CHECKING:
    from collections.abc import Mapping

    from queue_notifier.models import NotificationDecision, OnlineStats

NORMAL_MODE = 1
HIGHROOM_MODE = 8

_MODE_TITLES = {
    NORMAL_MODE: "Обычная 5х5",
    HIGHROOM_MODE: "Highroom 5x5",
}

CATEGORY_LABELS = {
    Category.NORMAL: "Обычная 5х5 (Авто)",
    Category.HIGHROOM: "Highroom 5х5 (Авто)",
    Category.MANUAL: "Рассылки админа (ГО)",
}

SETTINGS_PROMPT = "⚙️ *Настройки уведомлений*\nВыбери, какие уведомления хочешь получать:"
SETTINGS_SAVED = "Настройка сохранена"
JOIN_BUTTON = "🔗 Залететь в поиск"
SITE_BUTTON = "🔗 На сайт"
MANUAL_DONE = "✅ Рассылка выполнена."
MANUAL_FAILED = "Ошибка API."


def mode_title(mode: int) -> str:
    """Human name of a queue mode."""
    return _MODE_TITLES.get(mode, f"режим {mode}")


def queue_alert(decision: NotificationDecision, *, slots: int = 10) -> str:
    """Text announcing that a queue is almost full."""
    return (
        f"🔥 *Почти собрались!* \n"
        f"В поиске ({mode_title(decision.mode)}) уже *{decision.count}/{slots}* игроков."
    )


def manual_call(stats: OnlineStats, counts: Mapping[int, int]) -> str:
    """Text of the admin "time to play" broadcast."""
    return "\n".join(
        [
            "🚀 *DotaClassic: Пора заходить!*",
            f"👤 Играет: {stats.in_game or 0}",
            f"⚔️ Обычная: {counts.get(NORMAL_MODE, 0)}",
            f"🏆 Highroom: {counts.get(HIGHROOM_MODE, 0)}",
        ]
    )
