"""Unit tests for replay sessions.

Sessions are started inside the running loop, but samples are taken
manually so no test depends on wall-clock timing.
"""

import pytest

from tests.factories import FakeMedia, RecordingSink, make_log
from vodchat.domain.exceptions import SessionStateError
from vodchat.services.replay.session import ReplaySession, SessionState


@pytest.fixture
def log():
    """One event per second from 40 to 60, ids e0..e20."""
    return make_log(range(40, 61))


@pytest.fixture
def make_session(log, settings, fake_loop):
    created = []

    def _make(offset=0, media=None, sink=None):
        session = ReplaySession(
            log,
            offset,
            media or FakeMedia(current_time=50.3),
            sink or RecordingSink(),
            settings=settings,
            loop=fake_loop,
        )
        created.append(session)
        return session

    yield _make

    for session in created:
        session.dispose()


class TestStart:
    """Test starting a session."""

    async def test_start_tracks(self, make_session):
        """Test start moves the session to tracking."""
        session = make_session()
        assert session.state == SessionState.IDLE

        session.start()

        assert session.state == SessionState.TRACKING
        assert session.watcher.is_running
        assert session.started_at is not None
        await session.stop()

    async def test_first_sample_shows_context(self, make_session, fake_loop):
        """Test the first sample rebuilds the feed around the position."""
        sink = RecordingSink()
        session = make_session(sink=sink)
        session.start()

        session.watcher.sample()
        fake_loop.run_all()

        assert sink.clears == 1
        assert sink.revealed == [f"e{i}" for i in range(0, 11)]
        await session.stop()

    async def test_start_after_dispose_rejected(self, make_session):
        """Test a disposed session cannot be restarted."""
        session = make_session()
        session.dispose()

        with pytest.raises(SessionStateError):
            session.start()


class TestUpdateOffset:
    """Test applying a new offset."""

    async def test_offset_change_rebuilds_feed(self, make_session, fake_loop):
        """Test a new offset clears and rebuilds at the current second."""
        sink = RecordingSink()
        session = make_session(sink=sink)
        session.start()
        session.watcher.sample()
        fake_loop.run_all()

        session.update_offset(10)
        fake_loop.run_all()

        assert session.offset == 10
        assert sink.clears == 2
        assert sink.revealed == ["e0"]
        assert set(session.revealed) == {"e0"}
        assert session.position.previous_second == 50
        assert session.watcher.sample() is None
        await session.stop()

    async def test_offset_change_matches_fresh_jump(self, make_session, fake_loop):
        """Test changing the offset shows what a fresh start would show."""
        changed_sink, fresh_sink = RecordingSink(), RecordingSink()

        changed = make_session(offset=0, sink=changed_sink)
        changed.start()
        changed.watcher.sample()
        fake_loop.run_all()
        changed.update_offset(-5)
        fake_loop.run_all()

        fresh = make_session(offset=-5, sink=fresh_sink)
        fresh.start()
        fresh.watcher.sample()
        fake_loop.run_all()

        assert changed_sink.revealed == fresh_sink.revealed
        await changed.stop()
        await fresh.stop()

    async def test_same_offset_is_noop(self, make_session):
        """Test re-applying the current offset leaves the feed alone."""
        sink = RecordingSink()
        session = make_session(offset=7, sink=sink)
        session.start()

        session.update_offset(7)

        assert sink.clears == 0
        assert session.offset_changes == 0
        await session.stop()

    def test_offset_stored_while_idle(self, make_session):
        """Test an idle session only records the new value."""
        sink = RecordingSink()
        session = make_session(sink=sink)

        session.update_offset(30)

        assert session.offset == 30
        assert sink.clears == 0

    async def test_media_lost_during_offset_change(self, make_session):
        """Test losing the media while rebuilding demotes the session."""
        media = FakeMedia(current_time=50.0)
        session = make_session(media=media)
        session.start()

        media.lost = True
        session.update_offset(10)

        assert session.state == SessionState.IDLE
        await session.stop()


class TestTeardown:
    """Test demotion and disposal."""

    async def test_dispose_cancels_pending(self, make_session, fake_loop):
        """Test no reveal fires after disposal."""
        sink = RecordingSink()
        session = make_session(sink=sink)
        session.start()
        session.watcher.sample()
        handles = list(fake_loop.handles)

        session.dispose()

        assert session.state == SessionState.DISPOSED
        assert session.scheduler.pending_count == 0
        assert all(handle.cancelled() for handle in handles)

        # A callback that escaped cancellation is still dropped
        handles[0].callback(*handles[0].args)
        assert "e10" not in sink.revealed

    async def test_demote_resets_to_idle(self, make_session, fake_loop):
        """Test losing the media drops back to idle with empty state."""
        session = make_session()
        session.start()
        session.watcher.sample()

        session.demote()

        assert session.state == SessionState.IDLE
        assert len(session.revealed) == 0
        assert session.scheduler.pending_count == 0
        assert session.position.previous_second is None
        assert not session.watcher.is_running

    async def test_transitions_ignored_when_not_tracking(self, make_session, fake_loop):
        """Test transitions after demotion reveal nothing."""
        sink = RecordingSink()
        session = make_session(sink=sink)
        session.start()
        session.demote()

        session.watcher.sample()
        fake_loop.run_all()

        assert sink.revealed == []

    async def test_metrics(self, make_session, fake_loop):
        """Test metrics reflect session activity."""
        session = make_session()
        session.start()
        session.watcher.sample()
        fake_loop.run_all()

        metrics = session.get_metrics()

        assert metrics["state"] == "tracking"
        assert metrics["events"] == 21
        assert metrics["reveals"] == 11
        assert metrics["current_second"] == 50
        assert metrics["pending_reveals"] == 0
        await session.stop()
