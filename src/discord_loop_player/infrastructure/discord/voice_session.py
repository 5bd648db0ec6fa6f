"""Discord voice session implementing VoiceSession on top of discord.VoiceClient."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import discord
from discord.ext import tasks

from discord_loop_player.application.interfaces.voice_session import (
    AudioSink,
    VoiceGateway,
    VoiceSession,
)
from discord_loop_player.domain.shared.exceptions import (
    ChannelResolutionError,
    InvalidOperationError,
)
from discord_loop_player.domain.shared.messages import ErrorMessages, LogTemplates
from discord_loop_player.domain.voice.state import SessionStatus

if TYPE_CHECKING:
    from discord.types.voice import GuildVoiceState, VoiceServerUpdate

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT: float = 30.0
WATCHDOG_INTERVAL: float = 1.0

VocalChannel = discord.VoiceChannel | discord.StageChannel


class TrackedVoiceClient(discord.VoiceClient):
    """VoiceClient that reports gateway voice events to its owning session."""

    def __init__(
        self,
        client: discord.Client,
        channel: discord.abc.Connectable,
        session: DiscordVoiceSession | None = None,
    ) -> None:
        super().__init__(client, channel)
        self.session = session

    async def on_voice_state_update(self, data: GuildVoiceState) -> None:
        await super().on_voice_state_update(data)
        if self.session is not None:
            self.session.handle_voice_state(data.get("channel_id"))

    async def on_voice_server_update(self, data: VoiceServerUpdate) -> None:
        await super().on_voice_server_update(data)
        if self.session is not None:
            self.session.handle_voice_server(data.get("endpoint"))

    def cleanup(self) -> None:
        super().cleanup()
        if self.session is not None:
            self.session.handle_cleanup(self)


class DiscordVoiceSession(VoiceSession):
    """One voice connection to a channel, exposed as a status cell.

    Status follows the gateway handshake: ``signalling`` while the voice
    state is negotiated, ``connecting`` once the voice server is known,
    ``ready`` when the connection is up. A watchdog marks the session
    ``disconnected`` when a ready client stops reporting a live connection.
    """

    def __init__(
        self,
        channel: VocalChannel,
        *,
        self_deaf: bool = False,
        self_mute: bool = False,
        connect_timeout: float = CONNECT_TIMEOUT,
        watchdog_interval: float = WATCHDOG_INTERVAL,
    ) -> None:
        super().__init__(guild_id=channel.guild.id, channel_id=channel.id)
        self._channel = channel
        self._self_deaf = self_deaf
        self._self_mute = self_mute
        self._connect_timeout = connect_timeout

        self._voice_client: TrackedVoiceClient | None = None
        self._sink: AudioSink | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._watchdog.change_interval(seconds=watchdog_interval)

    @property
    def voice_client(self) -> TrackedVoiceClient | None:
        return self._voice_client

    def start(self) -> None:
        """Begin connecting in the background."""
        if self._connect_task is None:
            self._connect_task = asyncio.get_running_loop().create_task(
                self._connect(), name=f"voice-connect-{self.channel_id}"
            )

    def subscribe(self, sink: AudioSink) -> None:
        if self.status is SessionStatus.DESTROYED:
            raise InvalidOperationError(
                "subscribe", self.status, ErrorMessages.SESSION_DESTROYED
            )

        vc = self._voice_client
        if self._sink is not None and self._sink is not sink and vc is not None:
            self._sink.detach(vc)

        self._sink = sink
        logger.debug(LogTemplates.SESSION_SINK_SUBSCRIBED, self.channel_id)
        if self.status is SessionStatus.READY and vc is not None:
            sink.attach(vc)

    async def destroy(self) -> None:
        if self.status is SessionStatus.DESTROYED:
            return
        self.transition(SessionStatus.DESTROYED)
        self._watchdog.cancel()

        task, self._connect_task = self._connect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        vc = self._voice_client
        if vc is not None:
            if self._sink is not None:
                self._sink.detach(vc)
            try:
                await vc.disconnect(force=True)
            except Exception as e:
                logger.debug(LogTemplates.SESSION_DESTROY_ERROR, e)

        logger.info(LogTemplates.SESSION_DESTROYED, self.channel_id)

    # ─────────────────────────────────────────────────────────────────
    # Voice client hooks
    # ─────────────────────────────────────────────────────────────────

    def handle_voice_state(self, channel_id: Any) -> None:
        if self.status is SessionStatus.DESTROYED:
            return
        if channel_id is None:
            self.transition(SessionStatus.DISCONNECTED)
        elif self.status is SessionStatus.DISCONNECTED:
            self.transition(SessionStatus.SIGNALLING)

    def handle_voice_server(self, endpoint: str | None) -> None:
        if self.status is SessionStatus.DESTROYED or endpoint is None:
            return
        if self.status in (SessionStatus.SIGNALLING, SessionStatus.DISCONNECTED):
            self.transition(SessionStatus.CONNECTING)

    def handle_cleanup(self, voice_client: TrackedVoiceClient) -> None:
        if voice_client is not self._voice_client or self.status is SessionStatus.DESTROYED:
            return
        self.transition(SessionStatus.DISCONNECTED)

    # ─────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────

    def _client_factory(
        self, client: discord.Client, channel: discord.abc.Connectable
    ) -> TrackedVoiceClient:
        self._voice_client = TrackedVoiceClient(client, channel, session=self)
        return self._voice_client

    async def _connect(self) -> None:
        try:
            await self._channel.connect(
                cls=self._client_factory,
                self_deaf=self._self_deaf,
                self_mute=self._self_mute,
                timeout=self._connect_timeout,
                reconnect=True,
            )
        except TimeoutError:
            logger.error(LogTemplates.SESSION_CONNECT_TIMEOUT, self.channel_id)
            self._connection_failed()
            return
        except (discord.ClientException, discord.HTTPException, OSError) as e:
            logger.error(LogTemplates.SESSION_CONNECT_FAILED, self.channel_id, e)
            self._connection_failed()
            return

        if self.status is SessionStatus.DESTROYED:
            return

        logger.info(LogTemplates.SESSION_CONNECTED, self._channel.name, self._channel.guild.name)
        self._mark_ready()
        if not self._watchdog.is_running():
            self._watchdog.start()

    def _connection_failed(self) -> None:
        if self.status is not SessionStatus.DESTROYED:
            self.transition(SessionStatus.DISCONNECTED)

    def _mark_ready(self) -> None:
        self.transition(SessionStatus.READY)
        if self._sink is not None and self._voice_client is not None:
            self._sink.attach(self._voice_client)

    @tasks.loop(seconds=WATCHDOG_INTERVAL)
    async def _watchdog(self) -> None:
        vc = self._voice_client
        if vc is None or self.status is SessionStatus.DESTROYED:
            return

        connected = vc.is_connected()
        if self.status is SessionStatus.READY and not connected:
            logger.warning(LogTemplates.SESSION_LOST, self.guild_id)
            self.transition(SessionStatus.DISCONNECTED)
        elif self.status is not SessionStatus.READY and connected:
            self._mark_ready()


class DiscordVoiceGateway(VoiceGateway):
    """Opens DiscordVoiceSession instances against the bot's guild cache."""

    def __init__(
        self,
        bot: discord.Client,
        *,
        connect_timeout: float = CONNECT_TIMEOUT,
        watchdog_interval: float = WATCHDOG_INTERVAL,
    ) -> None:
        self._bot = bot
        self._connect_timeout = connect_timeout
        self._watchdog_interval = watchdog_interval

    def open(
        self,
        *,
        channel_id: int,
        guild_id: int,
        self_deaf: bool,
        self_mute: bool,
    ) -> DiscordVoiceSession:
        guild = self._bot.get_guild(guild_id)
        channel = guild.get_channel(channel_id) if guild is not None else None
        if not isinstance(channel, VocalChannel):
            raise ChannelResolutionError(
                channel_id,
                ErrorMessages.CHANNEL_NOT_RESOLVED.format(channel_id=channel_id, guild_id=guild_id),
            )

        session = DiscordVoiceSession(
            channel,
            self_deaf=self_deaf,
            self_mute=self_mute,
            connect_timeout=self._connect_timeout,
            watchdog_interval=self._watchdog_interval,
        )
        session.start()
        logger.info(LogTemplates.SESSION_OPENED, channel_id, guild_id, self_deaf, self_mute)
        return session
