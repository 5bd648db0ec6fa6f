"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from discord_loop_player.application.interfaces.audio_decoder import AudioDecoder, DecodeResult
from discord_loop_player.application.interfaces.voice_session import (
    AudioSink,
    VoiceGateway,
    VoiceSession,
)

__all__ = [
    "AudioDecoder",
    "AudioSink",
    "DecodeResult",
    "VoiceGateway",
    "VoiceSession",
]
