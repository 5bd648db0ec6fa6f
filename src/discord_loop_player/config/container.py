"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the decoder, sink, voice gateway and the
services built on them. Components are created on first access and cached
for the process lifetime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import discord

    from ..application.services.playback_loop import PlaybackLoop
    from ..application.services.reconnection import ReconnectionSupervisor
    from ..application.services.session_manager import SessionManager
    from ..infrastructure.audio.decoder import DecoderSupervisor
    from ..infrastructure.audio.sink import DiscordAudioSink
    from ..infrastructure.discord.voice_session import DiscordVoiceGateway
    from ..infrastructure.web.uptime import UptimeServer
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    This container manages all application dependencies and their lifecycle.
    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: discord.Client | None = None

    # Infrastructure adapters
    _decoder: DecoderSupervisor | None = None
    _audio_sink: DiscordAudioSink | None = None
    _voice_gateway: DiscordVoiceGateway | None = None
    _uptime_server: UptimeServer | None = None

    # Application services
    _playback_loop: PlaybackLoop | None = None
    _reconnection_supervisor: ReconnectionSupervisor | None = None
    _session_manager: SessionManager | None = None

    def set_bot(self, bot: discord.Client) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> discord.Client:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError("Bot not initialized. Call set_bot() first.")
        return self._bot

    # === Infrastructure ===

    @property
    def decoder(self) -> DecoderSupervisor:
        """Get the ffmpeg decoder supervisor."""
        if self._decoder is None:
            from ..infrastructure.audio.decoder import DecoderOptions, DecoderSupervisor

            playback = self.settings.playback
            options = DecoderOptions(
                executable=playback.ffmpeg_path,
                sample_rate=playback.sample_rate,
                channels=playback.channels,
            )
            self._decoder = DecoderSupervisor(options, debug=self.settings.debug)
        return self._decoder

    @property
    def audio_sink(self) -> DiscordAudioSink:
        """Get the process-wide audio sink."""
        if self._audio_sink is None:
            from ..infrastructure.audio.sink import DiscordAudioSink

            self._audio_sink = DiscordAudioSink(
                no_subscriber=self.settings.playback.no_subscriber
            )
        return self._audio_sink

    @property
    def voice_gateway(self) -> DiscordVoiceGateway:
        """Get the voice gateway bound to the bot."""
        if self._voice_gateway is None:
            from ..infrastructure.discord.voice_session import DiscordVoiceGateway

            voice = self.settings.voice
            self._voice_gateway = DiscordVoiceGateway(
                self.bot,
                connect_timeout=voice.connect_timeout,
                watchdog_interval=voice.watchdog_interval,
            )
        return self._voice_gateway

    @property
    def uptime_server(self) -> UptimeServer:
        """Get the uptime HTTP endpoint."""
        if self._uptime_server is None:
            from ..infrastructure.web.uptime import UptimeServer

            self._uptime_server = UptimeServer(self.settings.port)
        return self._uptime_server

    # === Application Services ===

    @property
    def playback_loop(self) -> PlaybackLoop:
        """Get the playback loop."""
        if self._playback_loop is None:
            from ..application.services.playback_loop import PlaybackLoop

            playback = self.settings.playback
            self._playback_loop = PlaybackLoop(
                self.decoder,
                restart_delay=playback.restart_delay,
                error_backoff=playback.error_backoff,
            )
        return self._playback_loop

    @property
    def reconnection_supervisor(self) -> ReconnectionSupervisor:
        """Get the reconnection supervisor."""
        if self._reconnection_supervisor is None:
            from ..application.services.reconnection import ReconnectionSupervisor

            voice = self.settings.voice
            self._reconnection_supervisor = ReconnectionSupervisor(
                self.voice_gateway,
                self.audio_sink,
                self_deaf=voice.self_deaf,
                self_mute=voice.self_mute,
                signalling_timeout=voice.signalling_timeout,
                connecting_timeout=voice.connecting_timeout,
            )
        return self._reconnection_supervisor

    @property
    def session_manager(self) -> SessionManager:
        """Get the session manager."""
        if self._session_manager is None:
            from ..application.services.session_manager import SessionManager

            voice = self.settings.voice
            self._session_manager = SessionManager(
                self.voice_gateway,
                self.audio_sink,
                self.reconnection_supervisor,
                self.playback_loop,
                source_path=self.settings.audio_file,
                self_deaf=voice.self_deaf,
                self_mute=voice.self_mute,
            )
        return self._session_manager

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Initialize all async resources."""
        await self.uptime_server.start()

    async def shutdown(self) -> None:
        """Shutdown and cleanup all resources."""
        if self._playback_loop is not None:
            try:
                await self._playback_loop.stop()
            except Exception as exc:
                logger.warning("Failed stopping playback loop: %r", exc)

        if self._reconnection_supervisor is not None:
            session = self._reconnection_supervisor.current
            try:
                await self._reconnection_supervisor.close()
            except Exception as exc:
                logger.warning("Failed stopping reconnection supervisor: %r", exc)
            if session is not None:
                try:
                    await session.destroy()
                except Exception as exc:
                    logger.debug("Failed destroying voice session: %r", exc)

        if self._decoder is not None:
            self._decoder.kill_all()

        if self._uptime_server is not None:
            await self._uptime_server.stop()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
