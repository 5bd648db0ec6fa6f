"""Port interfaces for the voice transport and the outbound audio sink."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from discord_loop_player.domain.voice.state import SessionStatus, SinkStatus, StateEmitter


class AudioSink(StateEmitter[SinkStatus], ABC):
    """The single long-lived outbound audio pipeline.

    A sink outlives any number of voice sessions. Sessions attach their
    transport to it when they become ready and detach when they go away.
    """

    def __init__(self) -> None:
        super().__init__(SinkStatus.IDLE)

    @abstractmethod
    def play(self, resource: Any) -> None:
        """Start playing *resource*, preempting whatever was playing."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Drop the current resource and go idle."""
        ...

    @abstractmethod
    def attach(self, transport: Any) -> None:
        """Route audio to *transport*, replacing any previous one."""
        ...

    @abstractmethod
    def detach(self, transport: Any) -> None:
        """Stop routing audio to *transport* if it is the current one."""
        ...


class VoiceSession(StateEmitter[SessionStatus], ABC):
    """One voice transport bound to a guild and channel."""

    def __init__(self, guild_id: int, channel_id: int) -> None:
        super().__init__(SessionStatus.SIGNALLING)
        self.guild_id = guild_id
        self.channel_id = channel_id

    @abstractmethod
    def subscribe(self, sink: AudioSink) -> None:
        """Carry *sink*'s audio over this session."""
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Tear the transport down for good. Safe to call more than once."""
        ...


class VoiceGateway(ABC):
    """Opens voice sessions."""

    @abstractmethod
    def open(
        self,
        *,
        channel_id: int,
        guild_id: int,
        self_deaf: bool,
        self_mute: bool,
    ) -> VoiceSession:
        """Open a session; it starts in ``signalling`` and advances on its own."""
        ...
