"""Settings store abstraction with Redis and in-memory backends."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from queue_notifier.config.settings import StorageEngine

if TYPE_CHECKING:
    from queue_notifier.config.settings import StorageConfig
    from queue_notifier.models import Category, Preferences, Recipient

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Contract shared by every recipient-settings backend."""

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    async def get(self, recipient_id: str) -> Recipient | None: ...
    async def put(self, recipient_id: str, recipient: Recipient) -> None: ...
    async def get_all(self) -> dict[str, Recipient]: ...
    async def get_or_create(self, recipient_id: str, display_name: str) -> Recipient: ...
    async def toggle(self, recipient_id: str, key: Category | str) -> Preferences | None: ...


class SettingsClient:
    """Settings store that delegates to the backend chosen by configuration."""

    def __init__(self, config: StorageConfig) -> None:
        """Initialize settings client with configuration.

        Args:
            config: Storage configuration with engine type and connection params.
        """
        self._config = config
        self._backend: SettingsStore | None = None

    async def connect(self) -> None:
        """Create and connect the configured backend.

        Raises:
            ValueError: If the storage engine type is invalid.
        """
        from queue_notifier.storage.memory import MemorySettingsStore
        from queue_notifier.storage.redis import RedisSettingsStore

        engine = str(self._config.engine).lower()

        if engine == StorageEngine.REDIS:
            logger.info("Using Redis storage backend")
            self._backend = RedisSettingsStore(self._config)
        elif engine == StorageEngine.MEMORY:
            logger.info("Using in-memory storage backend")
            self._backend = MemorySettingsStore(self._config)
        else:
            msg = f"Unsupported storage engine: {engine}"
            raise ValueError(msg)

        await self._backend.connect()

    async def close(self) -> None:
        """Close the backend connection (idempotent)."""
        if self._backend is not None:
            await self._backend.close()
            self._backend = None

    @property
    def is_connected(self) -> bool:
        """Check if a backend is connected."""
        return self._backend is not None

    @property
    def backend(self) -> SettingsStore:
        """Return the connected backend.

        Raises:
            RuntimeError: If not connected.
        """
        if self._backend is None:
            msg = "Settings store not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._backend

    async def get(self, recipient_id: str) -> Recipient | None:
        return await self.backend.get(recipient_id)

    async def put(self, recipient_id: str, recipient: Recipient) -> None:
        await self.backend.put(recipient_id, recipient)

    async def get_all(self) -> dict[str, Recipient]:
        return await self.backend.get_all()

    async def get_or_create(self, recipient_id: str, display_name: str) -> Recipient:
        return await self.backend.get_or_create(recipient_id, display_name)

    async def toggle(self, recipient_id: str, key: Category | str) -> Preferences | None:
        return await self.backend.toggle(recipient_id, key)
