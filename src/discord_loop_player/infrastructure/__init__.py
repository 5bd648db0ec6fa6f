"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Discord (bot, voice sessions)
- Audio (ffmpeg decoder, audio sink)
- Web (uptime endpoint)
"""

from discord_loop_player.infrastructure.discord.bot import create_bot
from discord_loop_player.infrastructure.discord.voice_session import DiscordVoiceGateway
from discord_loop_player.infrastructure.web.uptime import UptimeServer

__all__ = [
    "create_bot",
    "DiscordVoiceGateway",
    "UptimeServer",
]
