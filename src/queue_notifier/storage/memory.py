"""In-memory settings store for development and testing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from queue_notifier.storage import preferences as shared
from queue_notifier.storage.preferences import RecipientLocks

if TYPE_CHECKING:
    from queue_notifier.config.settings import StorageConfig
    from queue_notifier.models import Category, Preferences, Recipient

logger = logging.getLogger(__name__)


class MemorySettingsStore:
    """Volatile recipient store backed by a dict.

    Records are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, config: StorageConfig | None = None) -> None:
        """Initialize in-memory store.

        Args:
            config: Storage configuration (unused for memory backend).
        """
        self._config = config
        self._users: dict[str, Recipient] = {}
        self._locks = RecipientLocks()

    async def connect(self) -> None:  # noqa: ASYNC910
        """Connect (no-op for in-memory)."""
        logger.info("In-memory storage initialized")

    async def close(self) -> None:  # noqa: ASYNC910
        """Close (records are kept until the process exits)."""

    async def get(self, recipient_id: str) -> Recipient | None:  # noqa: ASYNC910
        """Return a copy of the stored record, or None."""
        recipient = self._users.get(str(recipient_id))
        return recipient.model_copy(deep=True) if recipient is not None else None

    async def put(self, recipient_id: str, recipient: Recipient) -> None:  # noqa: ASYNC910
        """Overwrite the record for *recipient_id*."""
        self._users[str(recipient_id)] = recipient.model_copy(deep=True)

    async def get_all(self) -> dict[str, Recipient]:  # noqa: ASYNC910
        """Return a snapshot of every stored record."""
        return {rid: r.model_copy(deep=True) for rid, r in self._users.items()}

    async def get_or_create(self, recipient_id: str, display_name: str) -> Recipient:
        """Return the recipient, creating it with baseline preferences if absent."""
        return await shared.get_or_create(self, self._locks, str(recipient_id), display_name)

    async def toggle(self, recipient_id: str, key: Category | str) -> Preferences | None:
        """Flip one preference; None if the recipient does not exist."""
        return await shared.toggle(self, self._locks, str(recipient_id), key)
