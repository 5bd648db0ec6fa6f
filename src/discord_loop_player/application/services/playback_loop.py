"""Playback Loop

Plays the configured file into the audio sink forever. Each iteration spawns
a fresh decoder, hands its PCM stream to the sink and suspends until the sink
reports idle. The decoder is always killed before the next one is started, so
at most one decode process is alive at any time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

import discord

from discord_loop_player.application.interfaces.audio_decoder import AudioDecoder
from discord_loop_player.application.interfaces.voice_session import AudioSink
from discord_loop_player.domain.shared.messages import LogTemplates
from discord_loop_player.domain.voice.state import SinkStatus, enters_state

logger = logging.getLogger(__name__)

RESTART_DELAY: float = 0.2
ERROR_BACKOFF: float = 2.0

ResourceFactory = Callable[[IO[bytes]], Any]


class PlaybackLoop:
    """Sequential, crash-proof playback of a single source.

    ``start`` launches ``run_forever`` as a singleton task; the ``started``
    field guards against a second launch when readiness fires twice.
    """

    def __init__(
        self,
        decoder: AudioDecoder,
        *,
        restart_delay: float = RESTART_DELAY,
        error_backoff: float = ERROR_BACKOFF,
        resource_factory: ResourceFactory | None = None,
    ) -> None:
        self._decoder = decoder
        self._restart_delay = restart_delay
        self._error_backoff = error_backoff
        self._resource_factory: ResourceFactory = resource_factory or discord.PCMAudio

        self.started = False
        self._task: asyncio.Task[None] | None = None
        self._current_process: Any = None
        self._iterations = 0
        self._failures = 0

    @property
    def iterations(self) -> int:
        """Number of tracks handed to the sink so far."""
        return self._iterations

    @property
    def failures(self) -> int:
        """Number of iterations that ended in an exception."""
        return self._failures

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def start(self, sink: AudioSink, source_path: Path) -> asyncio.Task[None]:
        """Launch the loop once; later calls return the running task."""
        if self.started and self._task is not None:
            logger.debug(LogTemplates.PLAYBACK_LOOP_ALREADY_STARTED)
            return self._task

        self.started = True
        self._task = asyncio.get_running_loop().create_task(
            self.run_forever(sink, source_path), name="playback-loop"
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the loop task and kill the live decoder."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._decoder.kill_decode(self._current_process)
        self._current_process = None
        logger.info(LogTemplates.PLAYBACK_LOOP_STOPPED)

    async def run_forever(self, sink: AudioSink, source_path: Path) -> None:
        """Play *source_path* into *sink* until cancelled.

        Returns early only when the source file is missing at the first check.
        """
        if not self._decoder.source_exists(source_path):
            logger.error(LogTemplates.PLAYBACK_SOURCE_MISSING, source_path)
            return

        logger.info(LogTemplates.PLAYBACK_LOOP_STARTED, source_path)

        while True:
            try:
                await self._play_once(sink, source_path)
                await asyncio.sleep(self._restart_delay)
            except Exception as e:
                self._failures += 1
                logger.exception(LogTemplates.PLAYBACK_ITERATION_FAILED, e)
                await asyncio.sleep(self._error_backoff)

    async def _play_once(self, sink: AudioSink, source_path: Path) -> None:
        decoded = await self._decoder.start_decode(source_path)
        self._current_process = decoded.process
        try:
            resource = self._resource_factory(decoded.stream)
            sink.play(resource)
            self._iterations += 1
            logger.debug(LogTemplates.PLAYBACK_STARTED, self._iterations)

            await enters_state(sink, SinkStatus.IDLE)
            logger.debug(LogTemplates.PLAYBACK_TRACK_ENDED, self._iterations)
        finally:
            self._decoder.kill_decode(decoded.process)
            self._current_process = None
