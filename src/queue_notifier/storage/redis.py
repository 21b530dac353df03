"""Redis settings store — one hash, one JSON record per recipient."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from queue_notifier.models import Recipient
from queue_notifier.storage import preferences as shared
from queue_notifier.storage.preferences import RecipientLocks

if TYPE_CHECKING:
    from queue_notifier.config.settings import StorageConfig
    from queue_notifier.models import Category, Preferences

logger = logging.getLogger(__name__)


class RedisSettingsStore:
    """Recipient store using a Redis hash (``HGET`` / ``HSET`` / ``HGETALL``).

    Stored payloads that fail to decode are logged and treated as absent so
    that one corrupted record never breaks a read of the whole set.
    """

    def __init__(self, config: StorageConfig, *, client: Any = None) -> None:
        """Initialize Redis store.

        Args:
            config: Storage configuration with the Redis URL and hash key.
            client: Pre-built ``redis.asyncio`` client (tests inject a fake).
        """
        self._config = config
        self._key = config.users_key
        self._redis = client
        self._locks = RecipientLocks()

    async def connect(self) -> None:
        """Connect to Redis.

        Raises:
            ConnectionError: If Redis connection fails.
        """
        if self._redis is None:
            from redis.asyncio import Redis

            self._redis = Redis.from_url(
                self._config.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=self._config.max_connections,
            )

        try:
            await self._redis.ping()
        except Exception as e:
            msg = f"Failed to connect to Redis at {self._config.url}"
            raise ConnectionError(msg) from e
        logger.info("Connected to Redis at %s", self._config.url)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")

    async def get(self, recipient_id: str) -> Recipient | None:
        """Fetch and decode one record; None if missing or corrupted."""
        assert self._redis is not None
        data = await self._redis.hget(self._key, str(recipient_id))
        if not data:
            return None

        recipient = self._decode(data)
        if recipient is None:
            logger.warning("Corrupted user data for chatId=%s, returning null", recipient_id)
        return recipient

    async def put(self, recipient_id: str, recipient: Recipient) -> None:
        """Overwrite the record for *recipient_id*."""
        assert self._redis is not None
        await self._redis.hset(self._key, str(recipient_id), recipient.to_json())

    async def get_all(self) -> dict[str, Recipient]:
        """Decode every record in the hash, skipping malformed ones."""
        assert self._redis is not None
        data: dict[str, str] = await self._redis.hgetall(self._key)
        users: dict[str, Recipient] = {}
        parse_errors = 0

        for rid, payload in data.items():
            recipient = self._decode(payload)
            if recipient is not None:
                users[str(rid)] = recipient
            else:
                parse_errors += 1

        if parse_errors > 0:
            logger.warning("Skipped %d users due to JSON parse errors", parse_errors)
        return users

    async def get_or_create(self, recipient_id: str, display_name: str) -> Recipient:
        """Return the recipient, creating it with baseline preferences if absent."""
        return await shared.get_or_create(self, self._locks, str(recipient_id), display_name)

    async def toggle(self, recipient_id: str, key: Category | str) -> Preferences | None:
        """Flip one preference; None if the recipient does not exist."""
        return await shared.toggle(self, self._locks, str(recipient_id), key)

    @staticmethod
    def _decode(payload: str | bytes) -> Recipient | None:
        try:
            return Recipient.model_validate_json(payload)
        except ValidationError as exc:
            logger.error("Failed to parse JSON: %s", exc.errors(include_url=False)[:1])
            logger.debug("Malformed JSON: %s...", str(payload)[:100])
            return None
