"""
Unit Tests for the Playback Loop

Tests for:
- At most one live decoder across iterations
- Liveness over zero-byte streams
- Restart delay and error backoff timing
- Missing source file precondition
- Crash isolation with error backoff
- Singleton start and stop
"""

from pathlib import Path
from unittest.mock import MagicMock

from conftest import FakeDecoder, FakeSink

from discord_loop_player.application.services.playback_loop import PlaybackLoop
from discord_loop_player.domain.voice.state import SinkStatus

SOURCE = Path("doubletake.mp4")


def _loop(decoder, **kwargs) -> PlaybackLoop:
    kwargs.setdefault("restart_delay", 0.001)
    kwargs.setdefault("error_backoff", 0.001)
    return PlaybackLoop(decoder, resource_factory=lambda stream: stream, **kwargs)


class TestPlaybackLoopIterations:
    """Tests for the decode/play/wait cycle."""

    async def test_single_live_decoder(self, fake_decoder, fake_sink, eventually):
        """Should never have two decoders alive at the same time."""
        loop = _loop(fake_decoder)

        loop.start(fake_sink, SOURCE)
        await eventually(lambda: loop.iterations >= 5)
        await loop.stop()

        assert fake_decoder.max_live == 1
        assert fake_decoder.live == set()

    async def test_decoder_killed_after_each_track(self, fake_decoder, fake_sink, eventually):
        """Should kill every spawned decoder before spawning the next."""
        loop = _loop(fake_decoder)

        loop.start(fake_sink, SOURCE)
        await eventually(lambda: fake_decoder.started >= 3)
        await loop.stop()

        assert len(fake_decoder.killed) == fake_decoder.started

    async def test_zero_byte_streams_keep_looping(self, eventually):
        """Should keep iterating when every track ends instantly."""
        decoder = FakeDecoder(payload=b"")
        sink = FakeSink(track_length=0.0)
        loop = _loop(decoder)

        loop.start(sink, SOURCE)
        await eventually(lambda: loop.iterations >= 10)
        await loop.stop()

        assert len(sink.played) >= 10
        assert loop.failures == 0

    async def test_restarts_after_short_delay(self, eventually):
        """Should start the next decode after the restart delay, well inside the backoff."""
        decoder = FakeDecoder(payload=b"")
        sink = FakeSink(track_length=0.0)
        loop = _loop(decoder, restart_delay=0.05, error_backoff=1.0)

        loop.start(sink, SOURCE)
        await eventually(lambda: len(decoder.start_times) >= 4)
        await loop.stop()

        times = decoder.start_times[:4]
        gaps = [later - earlier for earlier, later in zip(times, times[1:])]
        assert all(gap >= 0.04 for gap in gaps)
        assert all(gap < 0.5 for gap in gaps)
        assert loop.failures == 0

    async def test_plays_resource_built_from_stream(self, fake_decoder, fake_sink, eventually):
        """Should hand the sink a resource wrapping the decoder's stream."""
        factory = MagicMock(side_effect=lambda stream: ("resource", stream))
        loop = PlaybackLoop(fake_decoder, restart_delay=0.001, resource_factory=factory)

        loop.start(fake_sink, SOURCE)
        await eventually(lambda: fake_sink.played)
        await loop.stop()

        kind, _stream = fake_sink.played[0]
        assert kind == "resource"
        factory.assert_called()

    async def test_waits_for_sink_idle(self, fake_decoder, eventually):
        """Should not start the next decode while the sink is still playing."""
        sink = FakeSink(track_length=60.0)
        loop = _loop(fake_decoder)

        loop.start(sink, SOURCE)
        await eventually(lambda: sink.played)

        assert sink.status is SinkStatus.PLAYING
        assert fake_decoder.started == 1
        await loop.stop()
        sink.stop()


class TestPlaybackLoopPreconditions:
    """Tests for the missing-source precondition."""

    async def test_missing_source_never_decodes(self, fake_sink, caplog):
        """Should log and return without spawning a decoder."""
        decoder = FakeDecoder(exists=False)
        loop = _loop(decoder)

        await loop.run_forever(fake_sink, SOURCE)

        assert decoder.started == 0
        assert fake_sink.played == []
        assert "Audio file not found" in caplog.text


class TestPlaybackLoopErrors:
    """Tests for crash isolation."""

    async def test_iteration_error_does_not_stop_loop(self, fake_decoder, fake_sink, eventually):
        """Should log a failed iteration, back off and continue."""
        fake_decoder.errors.append(RuntimeError("decoder exploded"))
        loop = _loop(fake_decoder)

        loop.start(fake_sink, SOURCE)
        await eventually(lambda: loop.iterations >= 2)
        await loop.stop()

        assert loop.failures == 1
        assert fake_decoder.max_live == 1

    async def test_failed_iteration_waits_for_backoff(self, fake_decoder, eventually):
        """Should hold the next decode back by the error backoff, not the restart delay."""
        fake_decoder.errors.append(RuntimeError("decoder exploded"))
        sink = FakeSink(track_length=0.0)
        loop = _loop(fake_decoder, restart_delay=0.01, error_backoff=0.3)

        loop.start(sink, SOURCE)
        await eventually(lambda: len(fake_decoder.start_times) >= 2)
        await loop.stop()

        failed_at, retried_at = fake_decoder.start_times[:2]
        assert retried_at - failed_at >= 0.29

    async def test_sink_error_kills_decoder(self, fake_decoder, eventually):
        """Should kill the decoder even when the sink rejects the resource."""
        sink = MagicMock()
        sink.play.side_effect = RuntimeError("sink broke")
        loop = _loop(fake_decoder)

        loop.start(sink, SOURCE)
        await eventually(lambda: loop.failures >= 2)
        await loop.stop()

        assert fake_decoder.live == set()
        assert len(fake_decoder.killed) == fake_decoder.started


class TestPlaybackLoopLifecycle:
    """Tests for start/stop."""

    async def test_start_twice_returns_same_task(self, fake_decoder, fake_sink):
        """Should launch only one loop task."""
        loop = _loop(fake_decoder)

        first = loop.start(fake_sink, SOURCE)
        second = loop.start(fake_sink, SOURCE)

        assert first is second
        assert loop.started is True
        await loop.stop()

    async def test_stop_cancels_task_and_kills_decoder(self, fake_decoder, eventually):
        """Should cancel the task and kill the live decoder."""
        sink = FakeSink(track_length=60.0)
        loop = _loop(fake_decoder)

        task = loop.start(sink, SOURCE)
        await eventually(lambda: fake_decoder.live)
        await loop.stop()

        assert task.cancelled()
        assert fake_decoder.live == set()
        sink.stop()

    async def test_stop_without_start(self, fake_decoder):
        """Should be a no-op when the loop was never started."""
        loop = _loop(fake_decoder)

        await loop.stop()

        assert loop.task is None
