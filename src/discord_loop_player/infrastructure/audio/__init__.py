"""Audio infrastructure - ffmpeg decoder and Discord audio sink."""

from discord_loop_player.infrastructure.audio.decoder import DecoderOptions, DecoderSupervisor
from discord_loop_player.infrastructure.audio.sink import DiscordAudioSink

__all__ = [
    "DecoderOptions",
    "DecoderSupervisor",
    "DiscordAudioSink",
]
