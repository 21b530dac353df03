"""Stream — reconnecting client for the queue-state event source."""

from __future__ import annotations

from queue_notifier.stream.client import Backoff, ConnectionState, StreamClient

__all__ = ["Backoff", "ConnectionState", "StreamClient"]
