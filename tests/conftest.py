import asyncio
import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from discord_loop_player.application.interfaces.audio_decoder import AudioDecoder, DecodeResult
from discord_loop_player.application.interfaces.voice_session import (
    AudioSink,
    VoiceGateway,
    VoiceSession,
)
from discord_loop_player.domain.voice.state import SessionStatus, SinkStatus

# ============================================================================
# Test Doubles
# ============================================================================


class FakeProcess:
    _next_pid = 1000

    def __init__(self) -> None:
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.killed = False


class FakeDecoder(AudioDecoder):
    """Decoder double that tracks how many processes are alive at once."""

    def __init__(self, *, exists: bool = True, payload: bytes = b"") -> None:
        self.exists = exists
        self.payload = payload
        self.live: set[FakeProcess] = set()
        self.max_live = 0
        self.started = 0
        self.killed: list[FakeProcess] = []
        self.errors: list[Exception] = []
        self.start_times: list[float] = []

    def source_exists(self, source_path: Path) -> bool:
        return self.exists

    async def start_decode(self, source_path: Path) -> DecodeResult:
        self.start_times.append(asyncio.get_running_loop().time())
        if self.errors:
            raise self.errors.pop(0)
        process = FakeProcess()
        self.started += 1
        self.live.add(process)
        self.max_live = max(self.max_live, len(self.live))
        return DecodeResult(stream=io.BytesIO(self.payload), process=process)

    def kill_decode(self, process: Any) -> None:
        if process is None:
            return
        if process in self.live:
            self.live.discard(process)
            process.killed = True
            self.killed.append(process)


class FakeSink(AudioSink):
    """Sink double that goes idle *track_length* seconds after each play."""

    def __init__(self, track_length: float = 0.0) -> None:
        super().__init__()
        self.track_length = track_length
        self.played: list[Any] = []
        self.attached: list[Any] = []
        self.detached: list[Any] = []
        self._pending: asyncio.TimerHandle | None = None

    def play(self, resource: Any) -> None:
        self.played.append(resource)
        if self._pending is not None:
            self._pending.cancel()
        self.transition(SinkStatus.BUFFERING)
        self.transition(SinkStatus.PLAYING)
        self._pending = asyncio.get_running_loop().call_later(
            self.track_length, self.transition, SinkStatus.IDLE
        )

    def stop(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self.transition(SinkStatus.IDLE)

    def attach(self, transport: Any) -> None:
        self.attached.append(transport)

    def detach(self, transport: Any) -> None:
        self.detached.append(transport)


class FakeSession(VoiceSession):
    def __init__(self, guild_id: int = 1, channel_id: int = 2) -> None:
        super().__init__(guild_id=guild_id, channel_id=channel_id)
        self.subscribed: list[AudioSink] = []
        self.destroy_calls = 0

    def subscribe(self, sink: AudioSink) -> None:
        self.subscribed.append(sink)

    async def destroy(self) -> None:
        self.destroy_calls += 1
        self.transition(SessionStatus.DESTROYED)


class FakeGateway(VoiceGateway):
    def __init__(self) -> None:
        self.opened: list[FakeSession] = []
        self.calls: list[dict[str, Any]] = []
        self.error: Exception | None = None

    def open(
        self,
        *,
        channel_id: int,
        guild_id: int,
        self_deaf: bool,
        self_mute: bool,
    ) -> FakeSession:
        self.calls.append(
            {
                "channel_id": channel_id,
                "guild_id": guild_id,
                "self_deaf": self_deaf,
                "self_mute": self_mute,
            }
        )
        if self.error is not None:
            raise self.error
        session = FakeSession(guild_id=guild_id, channel_id=channel_id)
        self.opened.append(session)
        return session


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_decoder():
    return FakeDecoder()


@pytest.fixture
def fake_sink():
    return FakeSink(track_length=0.005)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def eventually() -> Callable[..., Any]:
    """Poll *predicate* until it holds or *timeout* seconds pass."""

    async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.001)

    return _eventually
