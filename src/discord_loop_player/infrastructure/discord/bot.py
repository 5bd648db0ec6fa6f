"""Discord client that joins one voice channel on ready and keeps the loop alive."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING, Any

import discord
from discord.ext import commands

from discord_loop_player.application.services.session_manager import resolve_channel
from discord_loop_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...config.container import Container
    from ...config.settings import Settings

logger = logging.getLogger(__name__)


class LoopPlayerBot(commands.Bot):
    def __init__(
        self,
        container: Container,
        settings: Settings,
        **kwargs,
    ) -> None:
        intents = discord.Intents.none()
        intents.guilds = True
        intents.voice_states = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
            **kwargs,
        )

        self.container = container
        self.settings = settings
        self._shutdown_event = asyncio.Event()
        self._signal_tasks: set[asyncio.Task[None]] = set()
        container.set_bot(self)

    async def setup_hook(self) -> None:
        logger.info(LogTemplates.BOT_SETUP)
        asyncio.get_running_loop().set_exception_handler(self._on_loop_exception)

        try:
            await self.container.initialize()
            logger.info(LogTemplates.BOT_CONTAINER_INITIALIZED)
        except Exception as e:
            logger.exception(LogTemplates.BOT_CONTAINER_INIT_FAILED, e)
            raise

        logger.info(LogTemplates.BOT_SETUP_COMPLETE)

    async def on_ready(self) -> None:
        logger.info(LogTemplates.BOT_READY, self.user, getattr(self.user, "id", None))

        try:
            channel = await resolve_channel(self, self.settings.voice_channel_id)
            await self.container.session_manager.join_and_play(channel)
        except Exception:
            logger.exception(LogTemplates.BOT_READY_HANDLER_ERROR)

    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        logger.exception(LogTemplates.BOT_EVENT_ERROR, event_method)

    def _on_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        """Log background failures and keep the process running."""
        exc = context.get("exception")
        logger.error(
            LogTemplates.BOT_UNHANDLED_ERROR,
            context.get("message", "unknown error"),
            exc_info=exc,
        )

    async def close(self) -> None:
        logger.info(LogTemplates.BOT_SHUTTING_DOWN)

        try:
            await self.container.shutdown()
            logger.info(LogTemplates.BOT_CONTAINER_SHUTDOWN)
        except Exception as e:
            logger.warning(LogTemplates.BOT_CONTAINER_SHUTDOWN_ERROR, e)

        await super().close()
        self._shutdown_event.set()
        logger.info(LogTemplates.BOT_SHUTDOWN_COMPLETE)

    def handle_signal(self, sig: signal.Signals) -> None:
        task = asyncio.get_running_loop().create_task(
            self._graceful_close(sig), name=f"graceful-close-{sig.name}"
        )
        self._signal_tasks.add(task)
        task.add_done_callback(self._signal_tasks.discard)

    async def _graceful_close(self, sig: signal.Signals) -> None:
        logger.info(LogTemplates.BOT_SIGNAL_RECEIVED, sig.name)
        await asyncio.sleep(self.settings.shutdown_grace_seconds)
        await self.close()

    def run_with_graceful_shutdown(self, token: str) -> None:
        async def runner():
            async with self:
                loop = asyncio.get_running_loop()
                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, self.handle_signal, sig)
                await self.start(token)

        asyncio.run(runner())


def create_bot(container: Container, settings: Settings) -> LoopPlayerBot:
    return LoopPlayerBot(container=container, settings=settings)
