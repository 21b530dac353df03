"""FastAPI diagnostics application — health, Prometheus metrics, queue state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Response
from prometheus_client import generate_latest

from queue_notifier import __version__

if TYPE_CHECKING:
    from queue_notifier.engine import NotifierEngine

logger = logging.getLogger(__name__)


def create_app(engine: NotifierEngine) -> FastAPI:
    """Build the diagnostics app around a running engine.

    The engine's lifecycle is owned by the caller; the app only reads from it.
    """
    app = FastAPI(
        title="queue-notifier",
        version=__version__,
        description="Matchmaking queue notifier diagnostics",
    )
    app.state.engine = engine

    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        stream = engine.stream
        return {
            "status": "ok",
            "stream": stream.state.value if stream is not None else "disabled",
        }

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(engine.metrics.registry),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    @app.get("/v1/queues", tags=["queues"])
    async def list_queues() -> dict[str, Any]:
        """Current and last-notified counts for every tracked mode."""
        tracker = engine.tracker
        return {
            "thresholds": sorted(tracker.thresholds),
            "low_water_mark": tracker.low_water_mark,
            "modes": [state.to_dict() for state in tracker.modes()],
        }

    @app.get("/v1/queues/{mode}", tags=["queues"])
    async def get_queue(mode: int) -> dict[str, Any]:
        state = engine.tracker.get(mode)
        if state is None:
            raise HTTPException(status_code=404, detail=f"queue mode {mode} not tracked")
        return state.to_dict()

    return app
