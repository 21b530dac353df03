"""Storage — recipient records and notification preferences.

Provides:
- ``SettingsStore`` — the backend contract
- ``SettingsClient`` — picks the backend from configuration
- ``MemorySettingsStore`` / ``RedisSettingsStore`` — the two backends
"""

from __future__ import annotations

from queue_notifier.storage.client import SettingsClient, SettingsStore
from queue_notifier.storage.memory import MemorySettingsStore
from queue_notifier.storage.redis import RedisSettingsStore

__all__ = [
    "MemorySettingsStore",
    "RedisSettingsStore",
    "SettingsClient",
    "SettingsStore",
]
