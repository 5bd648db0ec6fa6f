"""
Discord Audio Sink

The single long-lived outbound audio pipeline. The current resource is
played through a relay source so it can move between voice clients when the
session carrying it is replaced.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time

import discord

from discord_loop_player.application.interfaces.voice_session import AudioSink
from discord_loop_player.domain.shared.messages import LogTemplates
from discord_loop_player.domain.voice.state import NoSubscriberBehavior, SinkStatus

logger = logging.getLogger(__name__)

FRAME_DURATION: float = discord.opus.Encoder.FRAME_LENGTH / 1000


class _RelaySource(discord.AudioSource):
    """Reads frames of one sink generation; ends when that generation does."""

    def __init__(self, sink: DiscordAudioSink, generation: int) -> None:
        self._sink = sink
        self._generation = generation

    def read(self) -> bytes:
        return self._sink._read_frame(self._generation)

    def is_opus(self) -> bool:
        return False


class DiscordAudioSink(AudioSink):
    """Plays one resource at a time through whichever voice client is attached.

    Each ``play`` starts a new generation. The sink goes idle only when the
    current generation's resource is exhausted; stopping a relay because its
    voice client was detached or replaced does not count as the track ending.
    """

    def __init__(
        self, *, no_subscriber: NoSubscriberBehavior = NoSubscriberBehavior.PLAY
    ) -> None:
        super().__init__()
        self._no_subscriber = no_subscriber
        self._resource: discord.AudioSource | None = None
        self._generation = 0
        self._exhausted_generation = -1
        self._voice_client: discord.VoiceClient | None = None
        self._refused_client: discord.VoiceClient | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def voice_client(self) -> discord.VoiceClient | None:
        return self._voice_client

    @property
    def resource(self) -> discord.AudioSource | None:
        return self._resource

    def transition(self, new: SinkStatus) -> None:
        if new != self.status:
            logger.debug(LogTemplates.SINK_STATE_CHANGED, self.status, new)
        super().transition(new)

    # ─────────────────────────────────────────────────────────────────
    # Playback
    # ─────────────────────────────────────────────────────────────────

    def play(self, resource: discord.AudioSource) -> None:
        self._loop = asyncio.get_running_loop()
        previous = self._resource

        self._generation += 1
        self._resource = resource
        self._refused_client = None
        self._cancel_drain()
        self._cleanup_resource(previous)

        self.transition(SinkStatus.BUFFERING)
        self._route()

    def stop(self) -> None:
        self._generation += 1
        self._cancel_drain()
        if self._voice_client is not None and self._voice_client.is_playing():
            self._voice_client.stop()
        self._cleanup_resource(self._resource)
        self._resource = None
        self.transition(SinkStatus.IDLE)

    # ─────────────────────────────────────────────────────────────────
    # Subscription
    # ─────────────────────────────────────────────────────────────────

    def attach(self, transport: discord.VoiceClient) -> None:
        self._refused_client = None
        if transport is self._voice_client:
            # Same client came back; resume relaying if the drain took over.
            if self._resource is not None and not (transport.is_playing() or transport.is_paused()):
                self._cancel_drain()
                self._route()
            return

        previous = self._voice_client
        self._voice_client = transport
        if previous is not None:
            self._stop_relay(previous)

        logger.info(LogTemplates.SINK_ATTACHED, getattr(transport.guild, "id", None))
        self._cancel_drain()
        if self._resource is not None:
            self._route()

    def detach(self, transport: discord.VoiceClient) -> None:
        if transport is not self._voice_client:
            return

        self._voice_client = None
        self._stop_relay(transport)
        logger.info(LogTemplates.SINK_DETACHED, getattr(transport.guild, "id", None))

        if self._resource is not None:
            self._route()

    # ─────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────

    def _route(self) -> None:
        """Send the current resource to the attached client or apply the no-subscriber policy."""
        if self._has_live_client():
            self._start_relay(self._voice_client)
            return
        self._apply_no_subscriber()

    def _apply_no_subscriber(self) -> None:
        if self._no_subscriber is NoSubscriberBehavior.PLAY:
            self._loop = self._loop or asyncio.get_running_loop()
            self._drain_task = self._loop.create_task(
                self._drain(self._generation), name="audio-sink-drain"
            )
            self.transition(SinkStatus.PLAYING)
        elif self._no_subscriber is NoSubscriberBehavior.PAUSE:
            self.transition(SinkStatus.AUTOPAUSED)
        else:
            self.stop()

    def _has_live_client(self) -> bool:
        vc = self._voice_client
        return vc is not None and vc is not self._refused_client and vc.is_connected()

    def _start_relay(self, voice_client: discord.VoiceClient) -> None:
        generation = self._generation
        if voice_client.is_playing() or voice_client.is_paused():
            voice_client.stop()

        try:
            voice_client.play(
                _RelaySource(self, generation),
                after=functools.partial(self._after_relay, generation),
            )
        except discord.ClientException as e:
            logger.warning(LogTemplates.SINK_PLAY_FAILED, e)
            # Keep consuming the track until the client is attached again.
            self._refused_client = voice_client
            self._apply_no_subscriber()
            return

        self.transition(SinkStatus.PLAYING)

    @staticmethod
    def _stop_relay(voice_client: discord.VoiceClient) -> None:
        if voice_client.is_playing() or voice_client.is_paused():
            voice_client.stop()

    def _read_frame(self, generation: int) -> bytes:
        """Read one 20 ms frame of *generation*; called from the audio player thread."""
        resource = self._resource
        if resource is None or generation != self._generation:
            return b""

        try:
            data = resource.read()
        except (OSError, ValueError) as e:
            logger.debug(LogTemplates.SINK_READ_ERROR, e)
            data = b""

        if not data and generation == self._generation:
            self._exhausted_generation = generation
        return data

    def _after_relay(self, generation: int, error: Exception | None) -> None:
        """discord.py ``after`` callback; runs on the audio player thread."""
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._relay_finished, generation, error)

    def _relay_finished(self, generation: int, error: Exception | None) -> None:
        if error is not None:
            logger.warning(LogTemplates.SINK_RELAY_ERROR, error)
        if generation != self._generation:
            return
        if error is None and self._exhausted_generation != generation:
            return
        self._finish(generation)

    def _finish(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._cleanup_resource(self._resource)
        self._resource = None
        self.transition(SinkStatus.IDLE)

    async def _drain(self, generation: int) -> None:
        """Consume frames in real time while no voice client is attached."""
        loop = asyncio.get_running_loop()
        next_frame_at = time.perf_counter()
        while not self._has_live_client() and generation == self._generation:
            data = await loop.run_in_executor(None, self._read_frame, generation)
            if not data:
                self._finish(generation)
                return
            next_frame_at += FRAME_DURATION
            await asyncio.sleep(max(0.0, next_frame_at - time.perf_counter()))

        if generation == self._generation and self._resource is not None:
            self._drain_task = None
            self._route()

    def _cancel_drain(self) -> None:
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        self._drain_task = None

    @staticmethod
    def _cleanup_resource(resource: discord.AudioSource | None) -> None:
        if resource is None:
            return
        try:
            resource.cleanup()
        except Exception as e:
            logger.debug(LogTemplates.SINK_RESOURCE_CLEANUP_ERROR, e)
