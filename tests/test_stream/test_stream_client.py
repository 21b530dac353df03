"""Tests for the reconnecting stream client — uses scripted fake Socket.IO clients."""

from __future__ import annotations

import asyncio
from typing import Any

import socketio

from queue_notifier.config.settings import StreamConfig
from queue_notifier.metrics.collector import NotifierMetrics
from queue_notifier.stream.client import Backoff, ConnectionState, StreamClient, _default_client
from queue_notifier.tracker import QueueStateTracker

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _event(mode: int, in_queue: int, name: str = "QUEUE_STATE") -> tuple[str, dict[str, int]]:
    return name, {"mode": mode, "inQueue": in_queue}


class _Session:
    """One scripted Socket.IO session, shaped like ``socketio.AsyncClient``."""

    def __init__(
        self, events: list[tuple[str, Any]] | None = None, *, hang: bool = False
    ) -> None:
        self.events = events or []
        self.hang = hang
        self.handlers: dict[str, Any] = {}
        self.connect_args: tuple[str, dict[str, Any]] | None = None
        self.disconnected = False
        self._closed = asyncio.Event()

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_args = (url, kwargs)
        await self.handlers["connect"]()

    async def wait(self) -> None:
        for name, payload in self.events:
            handler = self.handlers.get(name)
            if handler is not None:
                await handler(payload)
        if self.hang:
            await self._closed.wait()

    async def disconnect(self) -> None:  # noqa: ASYNC910
        self.disconnected = True
        self._closed.set()


class _Refused:
    """A client whose connect attempt fails."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def on(self, event: str, handler: Any) -> None:
        pass

    async def connect(self, url: str, **kwargs: Any) -> None:  # noqa: ASYNC910
        raise self.exc

    async def wait(self) -> None:  # pragma: no cover
        raise AssertionError("wait after failed connect")

    async def disconnect(self) -> None:  # pragma: no cover
        pass


class _Server:
    """Hands out one scripted client per connection attempt."""

    def __init__(self, script: list[_Session | Exception]) -> None:
        self.script = list(script)
        self.made: list[_Session | _Refused] = []

    def factory(self) -> _Session | _Refused:
        item = self.script.pop(0) if self.script else _Session()
        client = _Refused(item) if isinstance(item, Exception) else item
        self.made.append(client)
        return client


def _client(server: _Server, *, stop_after: int, **kwargs: Any) -> tuple[StreamClient, list[float]]:
    delays: list[float] = []
    holder: dict[str, StreamClient] = {}

    async def sleep(delay: float) -> None:
        delays.append(delay)
        if len(delays) >= stop_after:
            await holder["client"].stop()

    client = StreamClient(
        "https://api.dotaclassic.ru", client_factory=server.factory, sleep=sleep, **kwargs
    )
    holder["client"] = client
    return client, delays


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------


class TestBackoff:
    def test_doubles_and_caps(self) -> None:
        backoff = Backoff(initial=1.0, maximum=30.0)
        assert [backoff.next() for _ in range(7)] == [1, 2, 4, 8, 16, 30, 30]

    def test_reset(self) -> None:
        backoff = Backoff()
        backoff.next()
        backoff.next()
        backoff.reset()
        assert backoff.next() == 1.0


# ---------------------------------------------------------------------------
# Connection loop
# ---------------------------------------------------------------------------


class TestStreamLoop:
    async def test_connects_over_websocket(self) -> None:
        session = _Session()
        server = _Server([session])
        client, _ = _client(server, stop_after=1)

        await client.run()

        assert session.connect_args == (
            "https://api.dotaclassic.ru",
            {"socketio_path": "/socket.io", "transports": ["websocket"]},
        )

    async def test_events_dispatched(self) -> None:
        received: list[Any] = []

        async def handler(payload: Any) -> None:  # noqa: ASYNC910
            received.append(payload)

        server = _Server(
            [_Session([_event(1, 7), _event(1, 8, name="OTHER"), _event(8, 9)])]
        )
        client, _ = _client(server, stop_after=1)
        client.on_event(handler)

        await client.run()

        assert received == [{"mode": 1, "inQueue": 7}, {"mode": 8, "inQueue": 9}]

    async def test_custom_event_name(self) -> None:
        received: list[Any] = []

        async def handler(payload: Any) -> None:  # noqa: ASYNC910
            received.append(payload)

        server = _Server([_Session([_event(1, 7), _event(1, 8, name="Q")])])
        client, _ = _client(server, stop_after=1, event="Q")
        client.on_event(handler)

        await client.run()

        assert received == [{"mode": 1, "inQueue": 8}]

    async def test_backoff_grows_and_caps(self) -> None:
        server = _Server([OSError("refused")] * 8)
        client, delays = _client(
            server, stop_after=7, backoff=Backoff(initial=1.0, maximum=30.0)
        )

        await client.run()

        assert delays == [1, 2, 4, 8, 16, 30, 30]
        assert client.attempts == 7

    async def test_backoff_resets_after_connect(self) -> None:
        server = _Server(
            [
                OSError("refused"),
                OSError("refused"),
                _Session(),
                OSError("refused"),
            ]
        )
        client, delays = _client(server, stop_after=4)

        await client.run()

        assert delays == [1, 2, 1, 2]

    async def test_fresh_client_per_attempt(self) -> None:
        server = _Server([OSError("refused"), _Session()])
        client, _ = _client(server, stop_after=2)

        await client.run()

        assert len(server.made) == 2
        assert server.made[0] is not server.made[1]

    async def test_handler_error_does_not_break_stream(self) -> None:
        received: list[Any] = []

        async def flaky(payload: Any) -> None:  # noqa: ASYNC910
            if payload["inQueue"] == 1:
                raise RuntimeError("boom")
            received.append(payload)

        server = _Server([_Session([_event(1, 1), _event(1, 2)])])
        client, delays = _client(server, stop_after=1)
        client.on_event(flaky)

        await client.run()

        assert received == [{"mode": 1, "inQueue": 2}]
        assert len(delays) == 1

    async def test_tracker_state_survives_reconnect(self) -> None:
        tracker = QueueStateTracker()
        decisions = []

        async def handler(payload: Any) -> None:  # noqa: ASYNC910
            decision = tracker.ingest(payload)
            if decision:
                decisions.append(decision)

        server = _Server(
            [
                _Session([_event(1, 8)]),
                OSError("reset"),
                _Session([_event(1, 8), _event(1, 9)]),
            ]
        )
        client, _ = _client(server, stop_after=3)
        client.on_event(handler)

        await client.run()

        assert [d.count for d in decisions] == [8, 9]

    async def test_state_transitions(self) -> None:
        states: list[ConnectionState] = []
        server = _Server([_Session(), OSError("refused")])
        client, _ = _client(server, stop_after=2)
        client.on_state_change(states.append)

        await client.run()

        assert states[:4] == [
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.DISCONNECTED,
            ConnectionState.RECONNECTING,
        ]
        assert client.state is ConnectionState.DISCONNECTED

    async def test_metrics(self) -> None:
        metrics = NotifierMetrics()
        server = _Server([OSError("refused"), _Session()])
        client, _ = _client(server, stop_after=2, metrics=metrics)

        await client.run()

        assert metrics.registry.get_sample_value("queue_notifier_stream_reconnects_total") == 2
        assert metrics.registry.get_sample_value("queue_notifier_stream_connected") == 0


class TestStartStop:
    async def test_start_and_stop(self) -> None:
        session = _Session(hang=True)
        server = _Server([session])
        client = StreamClient("https://x", client_factory=server.factory)

        await client.start()
        assert client.is_running
        for _ in range(20):
            if client.state is ConnectionState.CONNECTED:
                break
            await asyncio.sleep(0)
        assert client.state is ConnectionState.CONNECTED

        await client.stop()

        assert not client.is_running
        assert session.disconnected
        assert client.state is ConnectionState.DISCONNECTED
        assert len(server.made) == 1

    async def test_stop_when_not_running(self) -> None:
        client = StreamClient("https://x")
        await client.stop()
        assert client.state is ConnectionState.DISCONNECTED

    async def test_from_config(self) -> None:
        config = StreamConfig(
            url="http://localhost:5000",
            path="/io",
            event="Q",
            transports=["polling", "websocket"],
            reconnect_initial=0.5,
        )
        session = _Session([_event(1, 3, name="Q")])
        server = _Server([session])
        client = StreamClient.from_config(config)
        client._client_factory = server.factory
        received: list[Any] = []

        async def handler(payload: Any) -> None:  # noqa: ASYNC910
            received.append(payload)

        async def sleep(delay: float) -> None:
            received.append(delay)
            await client.stop()

        client._sleep = sleep
        client.on_event(handler)

        await client.run()

        assert client.url == "http://localhost:5000"
        assert session.connect_args == (
            "http://localhost:5000",
            {"socketio_path": "/io", "transports": ["polling", "websocket"]},
        )
        assert received == [{"mode": 1, "inQueue": 3}, 0.5]


def test_default_client_leaves_reconnection_to_loop() -> None:
    client = _default_client()
    assert isinstance(client, socketio.AsyncClient)
    assert client.reconnection is False
