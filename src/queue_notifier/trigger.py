"""Manual "time to play" broadcast, triggered by an admin."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from queue_notifier import messages
from queue_notifier.errors.channel_errors import StatsError
from queue_notifier.models import Category

if TYPE_CHECKING:
    from collections.abc import Iterable

    from queue_notifier.broadcast.engine import BroadcastEngine
    from queue_notifier.models import DeliveryOutcome
    from queue_notifier.stats.client import StatsClient
    from queue_notifier.tracker import QueueStateTracker

logger = logging.getLogger(__name__)


class ManualTrigger:
    """Fetches an online snapshot and broadcasts it to the ``manual`` category.

    The allow-list is normally enforced by the command front end; when one
    is given here it is checked again.
    """

    def __init__(
        self,
        stats: StatsClient,
        tracker: QueueStateTracker,
        broadcaster: BroadcastEngine,
        *,
        allowed: Iterable[int | str] | None = None,
    ) -> None:
        self._stats = stats
        self._tracker = tracker
        self._broadcaster = broadcaster
        self._allowed = {str(i) for i in allowed} if allowed is not None else None

    def is_allowed(self, invoker_id: int | str) -> bool:
        """Whether *invoker_id* may trigger a manual broadcast."""
        return self._allowed is None or str(invoker_id) in self._allowed

    async def trigger(self, invoker_id: int | str) -> DeliveryOutcome | None:
        """Run one manual broadcast.

        Returns:
            The delivery outcome, or None if the invoker is not allowed or the
            statistics fetch failed (nothing is broadcast in that case).
        """
        if not self.is_allowed(invoker_id):
            logger.warning("Manual broadcast refused for %s", invoker_id)
            return None

        try:
            online = await self._stats.get_online()
        except StatsError as exc:
            logger.error("broadcast_error type=manual triggeredBy=%s: %s", invoker_id, exc)
            return None

        text = messages.manual_call(online, self._tracker.snapshot())
        outcome = await self._broadcaster.broadcast(Category.MANUAL, text)
        logger.info("broadcast type=manual triggeredBy=%s sent=%d", invoker_id, outcome.sent)
        return outcome
