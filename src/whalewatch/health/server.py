"""
FastAPI liveness server.

Keeps an HTTP listener open while the watcher runs and reports the
subscriber state and pipeline counters. Carries no business logic.
"""

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from whalewatch import __version__
from whalewatch.config.constants import DEFAULT_HEALTH_HOST, DEFAULT_HEALTH_PORT, WS_CLOSE_TIMEOUT


logger = logging.getLogger(__name__)


StatusProvider = Callable[[], dict[str, Any]]


def create_app(status_provider: StatusProvider | None = None) -> FastAPI:
    app = FastAPI(title="whalewatch", version=__version__)

    async def get_root() -> str:
        return "whalewatch is running"

    async def get_health() -> dict[str, Any]:
        status = status_provider() if status_provider else {}
        return {"status": "ok", **status}

    app.get("/", response_class=PlainTextResponse)(get_root)
    app.get("/health")(get_health)
    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the engine."""

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


class HealthServer:
    """Runs the liveness app inside the engine's event loop."""

    def __init__(
        self,
        status_provider: StatusProvider | None = None,
        host: str = DEFAULT_HEALTH_HOST,
        port: int = DEFAULT_HEALTH_PORT,
    ) -> None:
        """
        Initialize health server.

        Args:
            status_provider: Callable returning the status payload.
            host: Bind address.
            port: Listen port.
        """
        self._host = host
        self._port = port
        self._app = create_app(status_provider)
        self._server = _EmbeddedServer(
            uvicorn.Config(
                self._app,
                host=host,
                port=port,
                log_level="warning",
                lifespan="off",
            )
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def app(self) -> FastAPI:
        """The FastAPI application."""
        return self._app

    def start(self) -> asyncio.Task[None]:
        """Start serving as a task."""
        self._task = asyncio.create_task(self._server.serve())
        logger.info(f"Server running at http://{self._host}:{self._port}")
        return self._task

    async def stop(self) -> None:
        """Stop serving."""
        self._server.should_exit = True

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=WS_CLOSE_TIMEOUT)
            except TimeoutError:
                self._task.cancel()
            self._task = None
