"""Stream client — persistent Socket.IO connection to the queue event source.

The client keeps exactly one connection open and reconnects forever with
exponential backoff. Events that arrive while disconnected are lost; the
tracker's edge-triggered policy tolerates the gaps.

Protocol handling (handshake, heartbeats, framing) is left to
``socketio.AsyncClient``; its own reconnection is switched off so that the
retry policy lives in ``run``.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import socketio

if TYPE_CHECKING:
    from collections.abc import Sequence

    from queue_notifier.config.settings import StreamConfig
    from queue_notifier.metrics.collector import NotifierMetrics

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[None]]
StateListener = Callable[["ConnectionState"], None]


class ConnectionState(enum.StrEnum):
    """Connection lifecycle, for diagnostics only."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class Backoff:
    """Exponential delay sequence: initial, initial*factor, ... capped at maximum."""

    initial: float = 1.0
    maximum: float = 30.0
    factor: float = 2.0
    _current: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._current = self.initial

    def next(self) -> float:
        """Return the delay to wait now and advance the sequence."""
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)
        return delay

    def reset(self) -> None:
        self._current = self.initial


def _default_client() -> socketio.AsyncClient:
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


class StreamClient:
    """Receives named Socket.IO events and hands their payloads to a handler.

    Usage::

        client = StreamClient("https://api.dotaclassic.ru", event="QUEUE_STATE")
        client.on_event(handle_queue_state)
        await client.start()
        ...
        await client.stop()
    """

    def __init__(
        self,
        url: str,
        *,
        path: str = "/socket.io",
        event: str = "QUEUE_STATE",
        transports: Sequence[str] = ("websocket",),
        backoff: Backoff | None = None,
        metrics: NotifierMetrics | None = None,
        client_factory: Callable[[], Any] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._url = url
        self._path = path
        self._event = event
        self._transports = list(transports)
        self._backoff = backoff or Backoff()
        self._metrics = metrics
        self._client_factory = client_factory or _default_client
        self._sleep = sleep or asyncio.sleep
        self._handlers: list[EventHandler] = []
        self._listeners: list[StateListener] = []
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._sio: Any = None
        self._attempts = 0

    @classmethod
    def from_config(
        cls, config: StreamConfig, *, metrics: NotifierMetrics | None = None
    ) -> StreamClient:
        """Build a client from the ``stream`` config section."""
        return cls(
            config.url,
            path=config.path,
            event=config.event,
            transports=config.transports,
            backoff=Backoff(initial=config.reconnect_initial, maximum=config.reconnect_max),
            metrics=metrics,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def attempts(self) -> int:
        """Number of connection attempts made so far."""
        return self._attempts

    def on_event(self, handler: EventHandler) -> None:
        """Register a coroutine called with every matching event payload."""
        self._handlers.append(handler)

    def on_state_change(self, listener: StateListener) -> None:
        """Register a callback for connection lifecycle transitions."""
        self._listeners.append(listener)

    async def start(self) -> None:
        """Start the connection loop in a background task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self.run())
        logger.info("Stream client started (%s)", self._url)

    async def stop(self) -> None:
        """Stop reconnecting and close the current connection."""
        if not self._running:
            return
        self._running = False
        if self._sio is not None:
            with contextlib.suppress(Exception):
                await self._sio.disconnect()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Stream client stopped")

    async def run(self) -> None:
        """Connect, wait for the session to end, and reconnect until ``stop``."""
        self._running = True
        while self._running:
            self._attempts += 1
            self._set_state(
                ConnectionState.CONNECTING if self._attempts == 1 else ConnectionState.RECONNECTING
            )
            sio = self._client_factory()
            sio.on("connect", self._on_connect)
            sio.on(self._event, self._dispatch)
            self._sio = sio
            try:
                await sio.connect(
                    self._url,
                    socketio_path=self._path,
                    transports=self._transports,
                )
                await sio.wait()
                if self._running:
                    logger.warning("Stream closed by server")
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Stream error: %s", exc)
            finally:
                self._sio = None
                self._set_state(ConnectionState.DISCONNECTED)

            if not self._running:
                break
            delay = self._backoff.next()
            if self._metrics:
                self._metrics.record_reconnect()
            logger.info("Reconnecting in %.1fs", delay)
            await self._sleep(delay)

    async def _on_connect(self) -> None:  # noqa: ASYNC910
        self._backoff.reset()
        self._set_state(ConnectionState.CONNECTED)

    async def _dispatch(self, payload: Any = None, *_: Any) -> None:
        for handler in self._handlers:
            try:
                await handler(payload)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Stream handler error for %s", self._event)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.info("Stream %s", state.value)
        if self._metrics:
            self._metrics.set_stream_connected(state == ConnectionState.CONNECTED)
        for listener in self._listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Stream state listener error")
