"""Observable lifecycle state shared by voice sessions and audio sinks.

Both the voice transport and the outbound audio pipeline are modelled as a
status cell that notifies listeners on every transition. Consumers suspend on
a transition with :func:`enters_state` instead of polling.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Collection
from enum import StrEnum
from typing import Generic, TypeVar

from discord_loop_player.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=StrEnum)
StateListener = Callable[[S, S], None]
Unsubscribe = Callable[[], None]


class SessionStatus(StrEnum):
    """Lifecycle of one voice transport."""

    SIGNALLING = "signalling"
    CONNECTING = "connecting"
    READY = "ready"
    DISCONNECTED = "disconnected"
    DESTROYED = "destroyed"


class SinkStatus(StrEnum):
    """Lifecycle of the outbound audio pipeline."""

    IDLE = "idle"
    BUFFERING = "buffering"
    PLAYING = "playing"
    AUTOPAUSED = "autopaused"
    PAUSED = "paused"


class NoSubscriberBehavior(StrEnum):
    """What the sink does with a resource while no session is subscribed."""

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"


class StateEmitter(Generic[S]):
    """A status cell that notifies listeners synchronously, in registration order."""

    def __init__(self, initial: S) -> None:
        self._status: S = initial
        self._listeners: list[StateListener[S]] = []

    @property
    def status(self) -> S:
        return self._status

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def on_state_change(self, listener: StateListener[S]) -> Unsubscribe:
        """Register *listener* for ``(old, new)`` transitions.

        Returns:
            A callable that removes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def transition(self, new: S) -> None:
        """Move to *new* and notify listeners. Re-entering the same status is a no-op."""
        old = self._status
        if old == new:
            return
        self._status = new
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception:
                logger.exception(LogTemplates.LISTENER_ERROR, type(self).__name__)


async def enters_state(
    emitter: StateEmitter[S],
    targets: S | Collection[S],
    timeout: float | None = None,
) -> S:
    """Wait until *emitter* is in one of *targets*.

    Returns immediately when the emitter is already in a target status. The
    listener is removed on every exit path: match, timeout and cancellation.

    Args:
        emitter: The status cell to observe.
        targets: One status or a collection of acceptable statuses.
        timeout: Seconds to wait, or ``None`` to wait forever.

    Returns:
        The status that satisfied the wait.

    Raises:
        TimeoutError: If no target status was reached within *timeout*.
    """
    wanted = frozenset([targets]) if isinstance(targets, StrEnum) else frozenset(targets)
    if emitter.status in wanted:
        return emitter.status

    future: asyncio.Future[S] = asyncio.get_running_loop().create_future()

    def listener(old: S, new: S) -> None:
        if new in wanted and not future.done():
            future.set_result(new)

    unsubscribe = emitter.on_state_change(listener)
    try:
        async with asyncio.timeout(timeout):
            return await future
    finally:
        unsubscribe()
