"""
Unit Tests for the Reconnection Supervisor

Tests for:
- Transient disconnects recover without destroy or rejoin
- Terminal disconnects destroy once, rejoin once and re-subscribe the sink
- Stale sessions and duplicate disconnects are ignored
- Rejoin failures are logged, never raised
"""

import asyncio

import pytest
from conftest import FakeSession

from discord_loop_player.application.services.reconnection import ReconnectionSupervisor
from discord_loop_player.domain.voice.state import SessionStatus


@pytest.fixture
def supervisor(fake_gateway, fake_sink):
    return ReconnectionSupervisor(
        fake_gateway,
        fake_sink,
        self_deaf=True,
        self_mute=False,
        signalling_timeout=0.05,
        connecting_timeout=0.05,
    )


@pytest.fixture
def session():
    s = FakeSession(guild_id=111, channel_id=222)
    s.transition(SessionStatus.READY)
    return s


class TestTransientRecovery:
    """Tests for disconnects that renegotiate on their own."""

    async def test_renegotiation_keeps_session(self, supervisor, session, fake_gateway, eventually):
        """Should not destroy or reopen when signalling then connecting follow."""
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        assert supervisor.recovering
        await asyncio.sleep(0.005)
        session.transition(SessionStatus.SIGNALLING)
        await asyncio.sleep(0.005)
        session.transition(SessionStatus.CONNECTING)

        await eventually(lambda: supervisor.transient_recoveries == 1)

        assert session.destroy_calls == 0
        assert fake_gateway.calls == []
        assert supervisor.current is session

    async def test_jump_straight_to_ready(self, supervisor, session, fake_gateway, eventually):
        """Should count a session that is already past signalling as recovered."""
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        session.transition(SessionStatus.READY)

        await eventually(lambda: supervisor.transient_recoveries == 1)

        assert session.destroy_calls == 0
        assert fake_gateway.calls == []

    async def test_duplicate_disconnect_while_recovering(self, supervisor, session, eventually):
        """Should run only one recovery at a time."""
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        first = supervisor._recovery
        session.transition(SessionStatus.SIGNALLING)
        session.transition(SessionStatus.DISCONNECTED)

        assert supervisor._recovery is first
        await supervisor.close()


class TestTerminalRecovery:
    """Tests for disconnects that do not recover in time."""

    async def test_rejoins_with_fresh_session(
        self, supervisor, session, fake_gateway, fake_sink, eventually
    ):
        """Should destroy the stale session once and open exactly one new one."""
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        await eventually(lambda: supervisor.rejoins == 1)

        assert session.destroy_calls == 1
        assert session.status is SessionStatus.DESTROYED
        assert len(fake_gateway.opened) == 1
        assert fake_gateway.calls[0] == {
            "channel_id": 222,
            "guild_id": 111,
            "self_deaf": True,
            "self_mute": False,
        }

        fresh = fake_gateway.opened[0]
        assert fresh.subscribed == [fake_sink]
        assert supervisor.current is fresh
        assert supervisor.transient_recoveries == 0

    async def test_signalling_without_connecting_is_terminal(
        self, supervisor, session, fake_gateway, eventually
    ):
        """Should rejoin when the session reaches signalling but never connecting."""
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        session.transition(SessionStatus.SIGNALLING)
        await eventually(lambda: supervisor.rejoins == 1)

        assert session.destroy_calls == 1
        assert len(fake_gateway.opened) == 1

    async def test_fresh_session_is_supervised(self, supervisor, session, fake_gateway, eventually):
        """Should recover the replacement session on its own disconnect."""
        supervisor.watch(session)
        session.transition(SessionStatus.DISCONNECTED)
        await eventually(lambda: supervisor.rejoins == 1)

        fresh = fake_gateway.opened[0]
        fresh.transition(SessionStatus.READY)
        fresh.transition(SessionStatus.DISCONNECTED)
        await eventually(lambda: supervisor.rejoins == 2)

        assert fresh.destroy_calls == 1
        assert len(fake_gateway.opened) == 2

    async def test_stale_session_events_ignored(
        self, supervisor, session, fake_gateway, eventually
    ):
        """Should ignore transitions of a session that is no longer current."""
        supervisor.watch(session)
        session.transition(SessionStatus.DISCONNECTED)
        await eventually(lambda: supervisor.rejoins == 1)

        session._status = SessionStatus.READY
        session.transition(SessionStatus.DISCONNECTED)
        await asyncio.sleep(0.12)

        assert len(fake_gateway.opened) == 1
        assert supervisor.recovering is False

    async def test_rejoin_failure_is_logged(self, supervisor, session, fake_gateway, caplog, eventually):
        """Should log an open failure and leave the supervisor usable."""
        fake_gateway.error = RuntimeError("gateway down")
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        await eventually(lambda: not supervisor.recovering)

        assert supervisor.rejoins == 0
        assert "Failed to rejoin voice channel 222" in caplog.text

    async def test_stale_destroy_failure_still_rejoins(
        self, supervisor, session, fake_gateway, eventually
    ):
        """Should rejoin even when destroying the stale session raises."""

        async def broken_destroy():
            raise RuntimeError("already gone")

        session.destroy = broken_destroy
        supervisor.watch(session)

        session.transition(SessionStatus.DISCONNECTED)
        await eventually(lambda: supervisor.rejoins == 1)

        assert len(fake_gateway.opened) == 1


class TestSupervisorLifecycle:
    """Tests for watch/close."""

    async def test_watch_replaces_observer(self, supervisor):
        """Should stop observing the previous session."""
        first = FakeSession()
        second = FakeSession()

        supervisor.watch(first)
        supervisor.watch(second)

        assert first.listener_count == 0
        assert second.listener_count == 1
        assert supervisor.current is second

    async def test_close_cancels_recovery(self, supervisor, session, fake_gateway):
        """Should cancel an in-flight recovery and unbind."""
        supervisor.watch(session)
        session.transition(SessionStatus.DISCONNECTED)

        await supervisor.close()

        assert supervisor.recovering is False
        assert session.listener_count == 0
        assert fake_gateway.calls == []

    async def test_destroyed_session_not_recovered(self, supervisor, session, fake_gateway):
        """Should not start recovery when a session is destroyed deliberately."""
        supervisor.watch(session)

        await session.destroy()

        assert supervisor.recovering is False
        assert fake_gateway.calls == []
