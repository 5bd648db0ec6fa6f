"""
Voice Domain

Lifecycle vocabulary for the voice transport and the outbound audio sink.
"""

from discord_loop_player.domain.voice.state import (
    NoSubscriberBehavior,
    SessionStatus,
    SinkStatus,
    StateEmitter,
    enters_state,
)

__all__ = [
    "NoSubscriberBehavior",
    "SessionStatus",
    "SinkStatus",
    "StateEmitter",
    "enters_state",
]
