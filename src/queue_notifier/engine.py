"""NotifierEngine — owns the store, tracker, broadcaster and stream client.

The command front end and the diagnostics API talk to the engine only
through ``on_start``, ``on_toggle_request``, ``on_manual_trigger`` and the
read-only properties.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from queue_notifier import messages
from queue_notifier.broadcast.engine import BroadcastEngine
from queue_notifier.metrics.collector import NotifierMetrics
from queue_notifier.stats.client import StatsClient
from queue_notifier.storage.client import SettingsClient
from queue_notifier.stream.client import StreamClient
from queue_notifier.tracker import QueueStateTracker
from queue_notifier.trigger import ManualTrigger

if TYPE_CHECKING:
    from queue_notifier.broadcast.channel import DeliveryChannel
    from queue_notifier.config.settings import AppConfig
    from queue_notifier.models import Category, DeliveryOutcome, Preferences, Recipient
    from queue_notifier.storage.client import SettingsStore

logger = logging.getLogger(__name__)

_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class NotifierEngine:
    """Central engine wiring every component together.

    Collaborators can be injected (tests pass an in-memory store, a fake
    channel and fake stats); anything not injected is built from config.
    """

    def __init__(
        self,
        config: AppConfig,
        channel: DeliveryChannel,
        *,
        store: SettingsStore | None = None,
        stats: StatsClient | None = None,
        stream: StreamClient | None = None,
        metrics: NotifierMetrics | None = None,
    ) -> None:
        self._config = config
        self._channel = channel
        self._store: SettingsStore = store or SettingsClient(config.storage)
        self._stats = stats or StatsClient(config.stats.url, timeout=config.stats.timeout)
        self._metrics = metrics or NotifierMetrics()
        self._stream = stream
        self._tracker = QueueStateTracker.from_config(config.queue)
        self._broadcaster = BroadcastEngine(
            self._store,
            channel,
            max_concurrency=config.broadcast.max_concurrency,
            metrics=self._metrics,
        )
        self._trigger = ManualTrigger(
            self._stats,
            self._tracker,
            self._broadcaster,
            allowed=config.bot.admin_ids,
        )
        self._pending: set[asyncio.Task[DeliveryOutcome]] = set()
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect the store and stats client, then start the stream.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        await self._store.connect()
        await self._stats.connect()

        if self._stream is None and self._config.stream.enabled:
            self._stream = StreamClient.from_config(self._config.stream, metrics=self._metrics)
        if self._stream is not None:
            self._stream.on_event(self.handle_queue_state)
            await self._stream.start()

        self._initialized = True
        logger.info("Notifier engine initialized")

    async def close(self) -> None:
        """Stop the stream, drain in-flight broadcasts and close connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        if self._stream is not None:
            await self._stream.stop()

        await self.drain(self._config.broadcast.drain_timeout)

        await self._stats.close()
        await self._store.close()
        self._initialized = False
        logger.info("Notifier engine shut down")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for stream-triggered broadcasts; cancel any still running after *timeout*."""
        if not self._pending:
            return
        pending = set(self._pending)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Abandoned %d in-flight broadcasts", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def tracker(self) -> QueueStateTracker:
        return self._tracker

    @property
    def broadcaster(self) -> BroadcastEngine:
        return self._broadcaster

    @property
    def store(self) -> SettingsStore:
        return self._store

    @property
    def stream(self) -> StreamClient | None:
        return self._stream

    @property
    def metrics(self) -> NotifierMetrics:
        return self._metrics

    # ------------------------------------------------------------------
    # Event source
    # ------------------------------------------------------------------

    async def handle_queue_state(self, payload: Any) -> None:
        """Feed one ``QUEUE_STATE`` payload to the tracker.

        A notification-worthy change is broadcast in a background task so
        that a slow fan-out never stalls event ingestion.
        """
        decision = self._tracker.ingest(payload)
        for state in self._tracker.modes():
            self._metrics.set_queue_size(state.mode, state.current_count)
        if decision is None:
            return

        logger.info(
            "broadcast type=%s mode=%d count=%d",
            decision.category.value,
            decision.mode,
            decision.count,
        )
        task = asyncio.create_task(
            self._broadcaster.broadcast(decision.category, messages.queue_alert(decision)),
        )
        self._pending.add(task)
        task.add_done_callback(self._on_broadcast_done)

    # ------------------------------------------------------------------
    # Command front end entry points
    # ------------------------------------------------------------------

    async def on_start(self, chat_id: int | str, username: str | None) -> Recipient:
        """Register a recipient (or return the existing one)."""
        self._ensure_initialized()
        return await self._store.get_or_create(str(chat_id), username or "n/a")

    async def on_toggle_request(self, chat_id: int | str, key: Category | str) -> Preferences | None:
        """Flip one preference; None if the chat never pressed /start."""
        self._ensure_initialized()
        return await self._store.toggle(str(chat_id), key)

    async def on_manual_trigger(self, invoker_id: int | str) -> DeliveryOutcome | None:
        """Run the admin broadcast; None if refused or the stats fetch failed."""
        self._ensure_initialized()
        return await self._trigger.trigger(invoker_id)

    def _on_broadcast_done(self, task: asyncio.Task[DeliveryOutcome]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("broadcast_error type=stream: %s", exc, exc_info=exc)

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
