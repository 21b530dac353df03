"""Queue state tracker — edge-triggered near-full detection per queue mode.

The event source may repeat the same occupancy value and may replay values
out of order after a reconnect, so notifications are keyed on the count
itself rather than on event identity:

* a mode notifies when its count rises *into* the threshold set and differs
  from the count it last notified for;
* once the count drops below the low-water mark the mode is re-armed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from queue_notifier.models import Category, NotificationDecision

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from queue_notifier.config.settings import QueueConfig

logger = logging.getLogger(__name__)


@dataclass
class QueueMode:
    """Mutable counters for one matchmaking queue variant."""

    mode: int
    category: Category
    current_count: int = 0
    last_notified_count: int = 0  # 0 = armed

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "category": self.category.value,
            "current_count": self.current_count,
            "last_notified_count": self.last_notified_count,
        }


class QueueStateTracker:
    """Owns the per-mode counters and decides when to notify.

    Must be driven from a single event source; ``observe`` is not safe to
    call concurrently for the same mode.

    Usage::

        tracker = QueueStateTracker.from_config(config.queue)
        decision = tracker.observe(1, 8)
        if decision is not None:
            await broadcaster.broadcast(decision.category, text)
    """

    def __init__(
        self,
        *,
        thresholds: Iterable[int] = (8, 9),
        low_water_mark: int = 5,
        modes: Mapping[int, Category] | None = None,
        default_category: Category = Category.HIGHROOM,
    ) -> None:
        self._thresholds = frozenset(thresholds)
        self._low_water_mark = low_water_mark
        self._default_category = default_category
        if modes is None:
            modes = {1: Category.NORMAL, 8: Category.HIGHROOM}
        self._modes: dict[int, QueueMode] = {
            mode: QueueMode(mode=mode, category=Category(category))
            for mode, category in modes.items()
        }

    @classmethod
    def from_config(cls, config: QueueConfig) -> QueueStateTracker:
        """Build a tracker from the ``queue`` config section."""
        return cls(
            thresholds=config.thresholds,
            low_water_mark=config.low_water_mark,
            modes=config.modes,
            default_category=config.default_category,
        )

    @property
    def thresholds(self) -> frozenset[int]:
        return self._thresholds

    @property
    def low_water_mark(self) -> int:
        return self._low_water_mark

    def category_for(self, mode: int) -> Category:
        """Return the notification category a mode maps to."""
        state = self._modes.get(mode)
        return state.category if state is not None else self._default_category

    def get(self, mode: int) -> QueueMode | None:
        """Return the counters for *mode*, or None if it was never seen."""
        return self._modes.get(mode)

    def count(self, mode: int) -> int:
        """Return the last known occupancy for *mode* (0 if unknown)."""
        state = self._modes.get(mode)
        return state.current_count if state is not None else 0

    def snapshot(self) -> dict[int, int]:
        """Return current counts for every tracked mode."""
        return {mode: state.current_count for mode, state in self._modes.items()}

    def modes(self) -> list[QueueMode]:
        return list(self._modes.values())

    def observe(self, mode: int, new_count: int) -> NotificationDecision | None:
        """Record a new occupancy value and return a decision if it is a crossing.

        Args:
            mode: Queue mode id from the event source.
            new_count: Players currently in the queue (must be >= 0).

        Returns:
            A ``NotificationDecision`` when the count rose into the threshold
            set and has not just been notified for, otherwise None.
        """
        state = self._modes.get(mode)
        if state is None:
            state = QueueMode(mode=mode, category=self._default_category)
            self._modes[mode] = state
            logger.info("Tracking new queue mode %d as %s", mode, state.category.value)

        prev = state.current_count
        state.current_count = new_count

        decision: NotificationDecision | None = None
        if (
            new_count in self._thresholds
            and new_count > prev
            and new_count != state.last_notified_count
        ):
            state.last_notified_count = new_count
            decision = NotificationDecision(mode=mode, count=new_count, category=state.category)

        if new_count < self._low_water_mark:
            state.last_notified_count = 0

        return decision

    def ingest(self, payload: Any) -> NotificationDecision | None:
        """Validate a raw ``QUEUE_STATE`` payload and feed it to ``observe``.

        Malformed payloads (missing mode, non-integer or negative count) are
        dropped without touching any state.
        """
        if not isinstance(payload, dict):
            logger.debug("Dropping non-object queue state: %r", payload)
            return None

        mode = payload.get("mode")
        count = payload.get("inQueue")
        if not _is_int(mode) or not _is_int(count) or count < 0:
            logger.debug("Dropping malformed queue state: %r", payload)
            return None

        return self.observe(mode, count)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
