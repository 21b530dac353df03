"""Metrics collector — Prometheus counters, gauges, histograms.

Exposes:
- ``queue_notifier_queue_size`` gauge-vec (per queue mode)
- ``queue_notifier_broadcasts_total`` counter-vec (per category)
- ``queue_notifier_deliveries_total`` counter-vec (category, result)
- ``queue_notifier_broadcast_duration_seconds`` histogram
- ``queue_notifier_stream_reconnects_total`` counter
- ``queue_notifier_stream_connected`` gauge
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator

_PREFIX = "queue_notifier"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`NotifierMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        return Counter(name, doc, labels, registry=self._registry)


class NotifierMetrics:
    """High-level metrics for the tracker, broadcaster and stream."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._queue_size = self._collector.gauge(
            f"{_PREFIX}_queue_size",
            "Players currently searching, per queue mode",
            ("mode",),
        )
        self._broadcasts = self._collector.counter(
            f"{_PREFIX}_broadcasts",
            "Broadcasts started, per category",
            ("category",),
        )
        self._deliveries = self._collector.counter(
            f"{_PREFIX}_deliveries",
            "Delivery attempts by result (sent, unreachable, transient)",
            ("category", "result"),
        )
        self._broadcast_duration = self._collector.histogram(
            f"{_PREFIX}_broadcast_duration_seconds",
            "Duration of a complete broadcast fan-out",
            ("category",),
        )
        self._reconnects = self._collector.counter(
            f"{_PREFIX}_stream_reconnects",
            "Reconnect attempts to the queue event source",
        )
        self._connected = self._collector.gauge(
            f"{_PREFIX}_stream_connected",
            "1 while the queue event source is connected",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def set_queue_size(self, mode: int, count: int) -> None:
        self._queue_size.labels(mode=str(mode)).set(count)

    def record_delivery(self, category: str, result: str) -> None:
        self._deliveries.labels(category=category, result=result).inc()

    def record_reconnect(self) -> None:
        self._reconnects.inc()

    def set_stream_connected(self, connected: bool) -> None:
        self._connected.set(1 if connected else 0)

    @contextmanager
    def track_broadcast(self, category: str) -> Iterator[None]:
        """Count a broadcast and track its duration."""
        self._broadcasts.labels(category=category).inc()
        start = time.monotonic()
        try:
            yield
        finally:
            self._broadcast_duration.labels(category=category).observe(time.monotonic() - start)
