"""Uptime endpoint for external ping monitors.

Always answers with a static liveness confirmation; it does not reflect
voice-session health. The server runs as a task on the bot's event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from discord_loop_player.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

ALIVE_MESSAGE = "Bot is alive"
DEFAULT_HOST = "0.0.0.0"


def create_app() -> FastAPI:
    app = FastAPI(title="Discord Loop Player", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=PlainTextResponse)
    @app.get("/health", response_class=PlainTextResponse)
    async def alive() -> str:
        return ALIVE_MESSAGE

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves SIGINT/SIGTERM to the bot."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class UptimeServer:
    def __init__(self, port: int, *, host: str = DEFAULT_HOST) -> None:
        self._port = port
        self._host = host
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def enabled(self) -> bool:
        return self._port > 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if not self.enabled:
            logger.info(LogTemplates.UPTIME_DISABLED)
            return
        if self._task is not None:
            return

        config = uvicorn.Config(
            create_app(),
            host=self._host,
            port=self._port,
            log_config=None,
            access_log=False,
            lifespan="off",
        )
        self._server = _EmbeddedServer(config)
        self._task = asyncio.get_running_loop().create_task(
            self._serve(self._server), name="uptime-server"
        )
        logger.info(LogTemplates.UPTIME_STARTED, self._port)

    async def stop(self) -> None:
        server, self._server = self._server, None
        task, self._task = self._task, None
        if server is not None:
            server.should_exit = True
        if task is not None:
            await task
            logger.info(LogTemplates.UPTIME_STOPPED)

    async def _serve(self, server: uvicorn.Server) -> None:
        try:
            await server.serve()
        except SystemExit:
            # uvicorn raises SystemExit when it cannot bind the port.
            logger.error(LogTemplates.UPTIME_START_FAILED, self._port)
