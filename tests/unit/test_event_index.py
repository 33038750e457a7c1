"""Unit tests for the event index and revealed set."""

import pytest

from tests.factories import make_log
from vodchat.services.replay.event_index import EventIndex, RevealedSet


def ids(events):
    return [e.id for e in events]


@pytest.fixture
def index():
    """Index over events at seconds 5, 5, 6, 8, 8, 8, 10 (ids e0..e6)."""
    return EventIndex(make_log([5, 5, 6, 8, 8, 8, 10]))


def revealed_with(*event_ids):
    revealed = RevealedSet()
    for event_id in event_ids:
        revealed.claim(event_id)
    return revealed


class TestRevealedSet:
    """Test RevealedSet membership."""

    def test_claim_is_check_and_mark(self):
        """Test an id can only be claimed once between clears."""
        revealed = RevealedSet()
        assert revealed.claim("a")
        assert not revealed.claim("a")
        assert "a" in revealed
        assert len(revealed) == 1

        revealed.clear()
        assert "a" not in revealed
        assert revealed.claim("a")


class TestRangeQueries:
    """Test point and range queries."""

    def test_range_equal(self, index):
        """Test events at exactly one second, in log order."""
        assert ids(index.range_equal(8, 0)) == ["e3", "e4", "e5"]
        assert index.range_equal(7, 0) == []

    def test_range_equal_applies_offset(self, index):
        """Test the offset supplied at query time is used."""
        assert ids(index.range_equal(18, 10)) == ["e3", "e4", "e5"]
        assert ids(index.range_equal(0, -5)) == ["e0", "e1"]

    @pytest.mark.parametrize("shift", [-20, -1, 3, 900])
    def test_queries_shift_with_offset(self, index, shift):
        """Test shifting the offset shifts the matching second by the same amount."""
        for second in range(4, 12):
            assert index.range_equal(second, 0) == index.range_equal(second + shift, shift)

    def test_range_between_inclusive(self, index):
        """Test inclusive ranges in either bound order."""
        assert ids(index.range_between(5, 8, 0)) == ["e0", "e1", "e2", "e3", "e4", "e5"]
        assert ids(index.range_between(8, 5, 0)) == ids(index.range_between(5, 8, 0))
        assert ids(index.range_between(9, 10, 0)) == ["e6"]
        assert index.range_between(11, 20, 0) == []

    def test_range_excludes_revealed(self, index):
        """Test revealed events are filtered out, order preserved."""
        revealed = revealed_with("e1", "e4")
        assert ids(index.range_between(5, 8, 0, revealed)) == ["e0", "e2", "e3", "e5"]
        assert ids(index.range_equal(8, 0, revealed)) == ["e3", "e5"]

    def test_fractional_timestamps(self):
        """Test fractional timestamps are bucketed into their floor second."""
        index = EventIndex(make_log([1.2, 1.9, 2.0]))
        assert ids(index.range_equal(1, 0)) == ["e0", "e1"]
        assert ids(index.range_equal(2, 0)) == ["e2"]
        assert index.find_last_before(2, 0) == 1


class TestBackwardQueries:
    """Test queries looking back from a second."""

    def test_find_last_before(self, index):
        """Test highest index strictly before a second."""
        assert index.find_last_before(8, 0) == 2
        assert index.find_last_before(9, 0) == 5
        assert index.find_last_before(100, 0) == 6
        assert index.find_last_before(5, 0) is None

    def test_find_last_before_skips_revealed(self, index):
        """Test revealed events are skipped."""
        assert index.find_last_before(8, 0, revealed_with("e2")) == 1
        assert index.find_last_before(6, 0, revealed_with("e0", "e1")) is None

    def test_preceding(self, index):
        """Test most recent events before a second, in log order."""
        assert ids(index.preceding(10, 0, 3)) == ["e3", "e4", "e5"]
        assert ids(index.preceding(10, 0, 25)) == ["e0", "e1", "e2", "e3", "e4", "e5"]
        assert index.preceding(10, 0, 0) == []
        assert index.preceding(5, 0, 25) == []

    def test_preceding_skips_revealed(self, index):
        """Test revealed events do not count towards the limit."""
        assert ids(index.preceding(10, 0, 3, revealed_with("e4"))) == ["e2", "e3", "e5"]
