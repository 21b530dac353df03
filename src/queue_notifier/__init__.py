"""queue-notifier — Telegram alerts for DotaClassic matchmaking queues."""

from __future__ import annotations

__version__ = "0.1.0"
