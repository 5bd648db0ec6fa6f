"""Reconnection Supervisor

Watches the current voice session and repairs it after a disconnect.

A disconnect that renegotiates on its own (the session re-enters
``signalling`` and then ``connecting`` within the bounded windows) is treated
as a transient flap and left alone. Anything slower is terminal: the stale
session is destroyed and a fresh one is opened against the same channel, with
the shared sink re-subscribed to it.
"""

from __future__ import annotations

import asyncio
import functools
import logging

from discord_loop_player.application.interfaces.voice_session import (
    AudioSink,
    VoiceGateway,
    VoiceSession,
)
from discord_loop_player.domain.shared.messages import LogTemplates
from discord_loop_player.domain.voice.state import SessionStatus, Unsubscribe, enters_state

logger = logging.getLogger(__name__)

SIGNALLING_TIMEOUT: float = 5.0
CONNECTING_TIMEOUT: float = 5.0

# A session that has already moved past a waited-for status counts as having reached it.
_SIGNALLING_OR_LATER = (SessionStatus.SIGNALLING, SessionStatus.CONNECTING, SessionStatus.READY)
_CONNECTING_OR_LATER = (SessionStatus.CONNECTING, SessionStatus.READY)


class ReconnectionSupervisor:
    """Owns the current-session cell and rebinds it on terminal disconnects."""

    def __init__(
        self,
        gateway: VoiceGateway,
        sink: AudioSink,
        *,
        self_deaf: bool = False,
        self_mute: bool = False,
        signalling_timeout: float = SIGNALLING_TIMEOUT,
        connecting_timeout: float = CONNECTING_TIMEOUT,
    ) -> None:
        self._gateway = gateway
        self._sink = sink
        self._self_deaf = self_deaf
        self._self_mute = self_mute
        self._signalling_timeout = signalling_timeout
        self._connecting_timeout = connecting_timeout

        self._session: VoiceSession | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._recovery: asyncio.Task[None] | None = None
        self._transient_recoveries = 0
        self._rejoins = 0

    @property
    def current(self) -> VoiceSession | None:
        """The session currently carrying the sink."""
        return self._session

    @property
    def transient_recoveries(self) -> int:
        return self._transient_recoveries

    @property
    def rejoins(self) -> int:
        return self._rejoins

    @property
    def recovering(self) -> bool:
        return self._recovery is not None and not self._recovery.done()

    def watch(self, session: VoiceSession) -> None:
        """Bind the cell to *session* and observe its transitions."""
        self._unbind()
        self._session = session
        self._unsubscribe = session.on_state_change(
            functools.partial(self._on_state_change, session)
        )

    async def close(self) -> None:
        """Cancel any recovery in flight and stop observing."""
        recovery, self._recovery = self._recovery, None
        if recovery is not None and not recovery.done():
            recovery.cancel()
            try:
                await recovery
            except asyncio.CancelledError:
                pass
        self._unbind()

    def _unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_state_change(
        self, session: VoiceSession, old: SessionStatus, new: SessionStatus
    ) -> None:
        logger.debug(LogTemplates.SESSION_STATE_CHANGED, old, new)
        if session is not self._session:
            return

        if new is SessionStatus.READY:
            return

        if new is SessionStatus.DISCONNECTED:
            if self.recovering:
                logger.debug(LogTemplates.RECONNECT_ALREADY_RECOVERING)
                return
            logger.warning(LogTemplates.RECONNECT_DISCONNECTED)
            self._recovery = asyncio.get_running_loop().create_task(
                self._recover(session), name="voice-recovery"
            )
            return

        if new is SessionStatus.DESTROYED:
            logger.info(LogTemplates.RECONNECT_UNHANDLED_STATE, new)

    async def _recover(self, session: VoiceSession) -> None:
        try:
            try:
                await enters_state(session, _SIGNALLING_OR_LATER, self._signalling_timeout)
                await enters_state(session, _CONNECTING_OR_LATER, self._connecting_timeout)
            except TimeoutError:
                await self._rejoin(session)
                return

            self._transient_recoveries += 1
            logger.info(LogTemplates.RECONNECT_TRANSIENT)
        except Exception:
            logger.exception(LogTemplates.RECONNECT_FAILED)

    async def _rejoin(self, stale: VoiceSession) -> None:
        logger.warning(LogTemplates.RECONNECT_TERMINAL, stale.channel_id)

        try:
            await stale.destroy()
        except Exception as e:
            logger.debug(LogTemplates.RECONNECT_STALE_DESTROY_FAILED, e)

        try:
            fresh = self._gateway.open(
                channel_id=stale.channel_id,
                guild_id=stale.guild_id,
                self_deaf=self._self_deaf,
                self_mute=self._self_mute,
            )
        except Exception:
            logger.exception(LogTemplates.RECONNECT_REJOIN_FAILED, stale.channel_id)
            return

        fresh.subscribe(self._sink)
        self.watch(fresh)
        self._rejoins += 1
        logger.info(LogTemplates.RECONNECT_REJOINED, stale.channel_id)
