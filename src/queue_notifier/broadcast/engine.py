"""Broadcast engine — concurrent fan-out of one message to opted-in recipients."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from queue_notifier.errors.channel_errors import DeliveryError
from queue_notifier.models import Category, DeliveryOutcome

if TYPE_CHECKING:
    from queue_notifier.broadcast.channel import DeliveryChannel
    from queue_notifier.metrics.collector import NotifierMetrics
    from queue_notifier.storage.client import SettingsStore

logger = logging.getLogger(__name__)

_DEFAULT_CONCURRENCY = 20


class BroadcastEngine:
    """Sends a message to every recipient subscribed to a category.

    Deliveries run concurrently, bounded by a semaphore. A failing recipient
    never aborts the others; ``broadcast`` returns once every attempt has
    settled.

    Usage::

        engine = BroadcastEngine(store, channel, max_concurrency=20)
        outcome = await engine.broadcast(Category.NORMAL, "text")
        print(outcome.sent, outcome.failed)
    """

    def __init__(
        self,
        store: SettingsStore,
        channel: DeliveryChannel,
        *,
        max_concurrency: int = _DEFAULT_CONCURRENCY,
        metrics: NotifierMetrics | None = None,
    ) -> None:
        if max_concurrency < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        self._store = store
        self._channel = channel
        self._max_concurrency = max_concurrency
        self._metrics = metrics

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def broadcast(self, category: Category | str, text: str) -> DeliveryOutcome:
        """Deliver *text* to all recipients with *category* enabled.

        Args:
            category: Notification category used to filter recipients.
            text: Opaque message body (Telegram Markdown).

        Returns:
            Aggregated sent/failed counts over the eligible recipients.
        """
        category = Category(category)
        users = await self._store.get_all()
        eligible = [
            rid for rid, user in users.items() if user.effective_preferences.enabled(category)
        ]

        if self._metrics:
            with self._metrics.track_broadcast(category.value):
                results = await self._fan_out(category, eligible, text)
        else:
            results = await self._fan_out(category, eligible, text)

        sent = sum(1 for ok in results if ok)
        outcome = DeliveryOutcome(sent=sent, failed=len(results) - sent)
        logger.info(
            "broadcast_complete type=%s recipients=%d sent=%d failed=%d skipped=%d",
            category.value,
            outcome.total,
            outcome.sent,
            outcome.failed,
            len(users) - len(eligible),
        )
        return outcome

    async def _fan_out(self, category: Category, recipients: list[str], text: str) -> list[bool]:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _deliver(recipient_id: str) -> bool:
            async with semaphore:
                return await self._deliver_one(category, recipient_id, text)

        return list(await asyncio.gather(*(_deliver(rid) for rid in recipients)))

    async def _deliver_one(self, category: Category, recipient_id: str, text: str) -> bool:
        try:
            await self._channel.send(recipient_id, text)
        except DeliveryError as exc:
            result = "unreachable" if exc.permanent else "transient"
            if exc.permanent:
                logger.info("Recipient %s unreachable: %s", recipient_id, exc.reason)
            else:
                logger.warning("Delivery to %s failed: %s", recipient_id, exc.reason)
        except asyncio.CancelledError:
            raise
        except Exception:
            result = "transient"
            logger.exception("Unexpected delivery error for %s", recipient_id)
        else:
            result = "sent"

        if self._metrics:
            self._metrics.record_delivery(category.value, result)
        return result == "sent"
