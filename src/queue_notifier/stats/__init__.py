"""Stats — point-in-time server statistics for manual broadcasts."""

from __future__ import annotations

from queue_notifier.stats.client import StatsClient

__all__ = ["StatsClient"]
