"""Session Manager

Joins the target voice channel, subscribes the shared sink and starts the
playback loop exactly once for the process lifetime.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import discord

from discord_loop_player.application.interfaces.voice_session import AudioSink, VoiceGateway
from discord_loop_player.application.services.playback_loop import PlaybackLoop
from discord_loop_player.application.services.reconnection import ReconnectionSupervisor
from discord_loop_player.domain.shared.exceptions import ChannelResolutionError
from discord_loop_player.domain.shared.messages import LogTemplates
from discord_loop_player.domain.voice.state import SessionStatus

logger = logging.getLogger(__name__)


def is_voice_channel(channel: Any) -> bool:
    return isinstance(channel, discord.VoiceChannel | discord.StageChannel)


async def resolve_channel(client: discord.Client, channel_id: int) -> Any | None:
    """Resolve *channel_id* from the cache, falling back to the API.

    Returns:
        The channel, or ``None`` when it is missing or inaccessible.
    """
    channel = client.get_channel(channel_id)
    if channel is not None:
        return channel

    try:
        return await client.fetch_channel(channel_id)
    except (discord.HTTPException, discord.InvalidData) as e:
        logger.warning(LogTemplates.CHANNEL_FETCH_FAILED, channel_id, e)
        return None


class SessionManager:
    def __init__(
        self,
        gateway: VoiceGateway,
        sink: AudioSink,
        supervisor: ReconnectionSupervisor,
        playback_loop: PlaybackLoop,
        *,
        source_path: Path,
        self_deaf: bool = False,
        self_mute: bool = False,
    ) -> None:
        self._gateway = gateway
        self._sink = sink
        self._supervisor = supervisor
        self._playback_loop = playback_loop
        self._source_path = source_path
        self._self_deaf = self_deaf
        self._self_mute = self_mute

    async def join_and_play(self, channel: Any | None) -> bool:
        """Join *channel* and make sure playback is running.

        A resolution failure or a non-voice channel is logged and leaves the
        process idle. Calling this again while a live session exists does not
        reopen it, and the playback loop is never started twice.

        Returns:
            True if a session is carrying the sink after the call.
        """
        if channel is None:
            logger.error(LogTemplates.CHANNEL_UNRESOLVED)
            return False

        if not is_voice_channel(channel):
            logger.error(LogTemplates.CHANNEL_NOT_VOICE, getattr(channel, "id", channel))
            return False

        current = self._supervisor.current
        if current is not None and current.status is not SessionStatus.DESTROYED:
            logger.debug(LogTemplates.SESSION_ALREADY_JOINED, channel.id)
        else:
            logger.info(LogTemplates.CHANNEL_RESOLVED, channel.name, channel.id)
            try:
                session = self._gateway.open(
                    channel_id=channel.id,
                    guild_id=channel.guild.id,
                    self_deaf=self._self_deaf,
                    self_mute=self._self_mute,
                )
            except ChannelResolutionError as e:
                logger.error(e.message)
                return False
            session.subscribe(self._sink)
            self._supervisor.watch(session)

        self._playback_loop.start(self._sink, self._source_path)
        return True
