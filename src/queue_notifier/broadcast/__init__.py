"""Broadcast — fan-out of notifications to subscribed recipients.

Provides:
- ``BroadcastEngine`` — filters recipients by preference and delivers concurrently
- ``DeliveryChannel`` — the per-recipient send contract
- ``TelegramDeliveryChannel`` — Bot API implementation of the channel
"""

from __future__ import annotations

from queue_notifier.broadcast.channel import DeliveryChannel, TelegramDeliveryChannel
from queue_notifier.broadcast.engine import BroadcastEngine

__all__ = [
    "BroadcastEngine",
    "DeliveryChannel",
    "TelegramDeliveryChannel",
]
