# ruff: noqa: N999
"""
Domain Layer

Contains the pure lifecycle logic of the player:
- shared/: Cross-cutting exceptions, messages and validators
- voice/: Session and sink status vocabulary, state emitter and waits
"""

from discord_loop_player.domain.shared.exceptions import DomainError
from discord_loop_player.domain.voice.state import SessionStatus, SinkStatus

__all__ = [
    "DomainError",
    "SessionStatus",
    "SinkStatus",
]
