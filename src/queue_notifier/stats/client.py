"""Online statistics client — ``GET /v1/stats/online``.

Used only by the manual broadcast; failures are reported to the caller and
never retried here.
"""

from __future__ import annotations

from typing import Any

import httpx

from queue_notifier.errors.channel_errors import StatsError
from queue_notifier.models import OnlineStats

_ONLINE_PATH = "/v1/stats/online"


class StatsClient:
    """Async HTTP client for the game server's statistics API.

    Usage::

        stats = StatsClient("https://api.dotaclassic.ru")
        await stats.connect()
        try:
            online = await stats.get_online()
        finally:
            await stats.close()
    """

    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    async def get_online(self) -> OnlineStats:
        """Fetch the current online snapshot.

        Raises:
            StatsError: On a non-2xx response, transport failure or bad body.
        """
        client = self._ensure_connected()
        try:
            resp = await client.get(_ONLINE_PATH)
        except httpx.HTTPError as exc:
            msg = f"stats request failed: {exc}"
            raise StatsError(msg) from exc

        if not resp.is_success:
            msg = f"stats endpoint returned {resp.status_code}"
            raise StatsError(msg, status_code=resp.status_code)

        try:
            data: dict[str, Any] = resp.json()
        except ValueError as exc:
            msg = "stats endpoint returned invalid JSON"
            raise StatsError(msg, status_code=resp.status_code) from exc
        if not isinstance(data, dict):
            msg = "stats endpoint returned an unexpected payload"
            raise StatsError(msg, status_code=resp.status_code)

        return OnlineStats(
            sessions=_as_int(data.get("sessions")),
            in_game=_as_int(data.get("inGame")),
        )

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "StatsClient not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0
