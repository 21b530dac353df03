"""Shared test fixtures for the queue-notifier test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from queue_notifier.config.settings import StorageConfig, StorageEngine
from queue_notifier.errors.channel_errors import DeliveryError
from queue_notifier.storage.memory import MemorySettingsStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class FakeChannel:
    """Delivery channel that records sends and fails for chosen recipients."""

    def __init__(self, failures: dict[str, str] | None = None) -> None:
        self.failures = failures or {}
        self.sent: list[tuple[str, str]] = []
        self.attempted: list[str] = []

    async def send(self, recipient_id: str, text: str, *, rich: bool = True) -> None:  # noqa: ASYNC910
        self.attempted.append(recipient_id)
        if recipient_id in self.failures:
            raise DeliveryError(recipient_id, self.failures[recipient_id])
        self.sent.append((recipient_id, text))


class FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` for the hash-based store."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.writes = 0
        self.closed = False

    async def ping(self) -> bool:  # noqa: ASYNC910
        return True

    async def aclose(self) -> None:  # noqa: ASYNC910
        self.closed = True

    async def hget(self, key: str, field: str) -> str | None:  # noqa: ASYNC910
        return self.hashes.get(key, {}).get(field)

    async def hset(self, key: str, field: str, value: str) -> int:  # noqa: ASYNC910
        self.writes += 1
        bucket = self.hashes.setdefault(key, {})
        created = field not in bucket
        bucket[field] = value
        return int(created)

    async def hgetall(self, key: str) -> dict[str, Any]:  # noqa: ASYNC910
        return dict(self.hashes.get(key, {}))


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from queue_notifier.config.settings import AppConfig, ServerConfig, StreamConfig

    return AppConfig(
        debug=True,
        storage=StorageConfig(engine=StorageEngine.MEMORY),
        stream=StreamConfig(enabled=False),
        server=ServerConfig(enabled=False),
    )


@pytest.fixture
async def memory_store() -> AsyncIterator[MemorySettingsStore]:
    store = MemorySettingsStore()
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def make_channel() -> type[FakeChannel]:
    """Factory for channels with per-recipient failures."""
    return FakeChannel
