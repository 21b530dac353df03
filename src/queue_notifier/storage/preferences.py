"""Preference logic shared by every settings-store backend.

Backends only know how to ``get`` and ``put`` whole records; creation with
baseline preferences, lazy migration of legacy records and the single-flag
flip are implemented once here and called by each backend.

Both operations are read-modify-write over a whole record. They are
serialised per recipient through ``RecipientLocks`` so that two concurrent
toggles of different keys cannot overwrite each other within one process.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Protocol

from queue_notifier.models import Category, Preferences, Recipient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

logger = logging.getLogger(__name__)


class RecordIO(Protocol):
    """The minimal record access the shared helpers need."""

    async def get(self, recipient_id: str) -> Recipient | None: ...
    async def put(self, recipient_id: str, recipient: Recipient) -> None: ...


class RecipientLocks:
    """``asyncio.Lock`` per recipient id, held only while someone uses it.

    A lock is created on first use and dropped when its last holder or
    waiter leaves, so ids seen once do not accumulate.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def __call__(self, recipient_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(recipient_id, asyncio.Lock())
        self._users[recipient_id] = self._users.get(recipient_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[recipient_id] -= 1
            if not self._users[recipient_id]:
                del self._users[recipient_id]
                del self._locks[recipient_id]

    def __len__(self) -> int:
        return len(self._locks)

    def __iter__(self) -> Iterator[str]:
        return iter(self._locks)


async def get_or_create(
    io: RecordIO,
    locks: RecipientLocks,
    recipient_id: str,
    display_name: str,
) -> Recipient:
    """Return the recipient, creating or migrating it first if needed."""
    async with locks(recipient_id):
        recipient = await io.get(recipient_id)
        if recipient is None:
            logger.debug("Creating new user: chatId=%s, username=%s", recipient_id, display_name)
            recipient = Recipient(display_name=display_name, preferences=Preferences())
            await io.put(recipient_id, recipient)
        elif recipient.preferences is None:
            logger.debug("Migrating user settings: chatId=%s", recipient_id)
            recipient = recipient.model_copy(update={"preferences": Preferences()})
            await io.put(recipient_id, recipient)
        return recipient


async def toggle(
    io: RecordIO,
    locks: RecipientLocks,
    recipient_id: str,
    key: Category | str,
) -> Preferences | None:
    """Flip one preference and persist the whole record.

    Returns the updated preferences, or ``None`` without writing anything
    when the recipient does not exist.
    """
    category = Category(key)
    async with locks(recipient_id):
        recipient = await io.get(recipient_id)
        if recipient is None:
            logger.warning("toggleSetting called for non-existent user: chatId=%s", recipient_id)
            return None

        updated = recipient.effective_preferences.flipped(category)
        await io.put(recipient_id, recipient.model_copy(update={"preferences": updated}))
        logger.debug(
            "Toggled setting %s=%s for chatId=%s",
            category.value,
            updated.enabled(category),
            recipient_id,
        )
        return updated
