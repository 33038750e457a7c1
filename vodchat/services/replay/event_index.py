"""Range and point queries over a chat log by adjusted timestamp.

The index never caches the offset: every query receives the offset to apply,
so an offset change takes effect on the next query without rebuilding
anything. Because the offset shifts every event equally, the adjusted
seconds stay sorted in log order and each query is a pair of binary
searches.
"""

import logging
from bisect import bisect_left
from typing import Iterable, List, Optional, Set

from .models import ChatEvent, EventLog

logger = logging.getLogger(__name__)


class RevealedSet:
    """Identities of the events already shown in the current session.

    Grows monotonically between clears. ``claim`` is the only way to add an
    identity and doubles as the duplicate check, so an event can be handed
    to the sink at most once between clears.
    """

    def __init__(self):
        self._ids: Set[str] = set()

    def claim(self, event_id: str) -> bool:
        """Mark an event as revealed.

        Returns:
            bool: False if the event had already been claimed
        """
        if event_id in self._ids:
            return False
        self._ids.add(event_id)
        return True

    def clear(self) -> None:
        self._ids.clear()

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(self._ids)

    def __repr__(self) -> str:
        return f"RevealedSet(size={len(self._ids)})"


def _unrevealed(
    events: Iterable[ChatEvent], revealed: Optional[RevealedSet]
) -> List[ChatEvent]:
    if revealed is None:
        return list(events)
    return [event for event in events if event.id not in revealed]


class EventIndex:
    """Queries over an ``EventLog`` keyed by adjusted playback second."""

    def __init__(self, log: EventLog):
        self.log = log
        self._events = log.events

    def __len__(self) -> int:
        return len(self._events)

    def _lower(self, second: int, offset: int) -> int:
        """Index of the first event whose adjusted second is >= ``second``."""
        return bisect_left(self._events, second, key=lambda e: e.adjusted_second(offset))

    def find_last_before(
        self,
        second: int,
        offset: int,
        revealed: Optional[RevealedSet] = None,
    ) -> Optional[int]:
        """Highest index whose adjusted timestamp is strictly before ``second``.

        Args:
            second: Playback second
            offset: Offset applied to raw timestamps
            revealed: Events to skip

        Returns:
            Optional[int]: Log index, or None if no such event exists
        """
        index = self._lower(second, offset) - 1
        while index >= 0:
            if revealed is None or self._events[index].id not in revealed:
                return index
            index -= 1
        return None

    def range_equal(
        self,
        second: int,
        offset: int,
        revealed: Optional[RevealedSet] = None,
    ) -> List[ChatEvent]:
        """Events whose adjusted timestamp falls on exactly ``second``, in log order."""
        return self.range_between(second, second, offset, revealed)

    def range_between(
        self,
        from_second: int,
        to_second: int,
        offset: int,
        revealed: Optional[RevealedSet] = None,
    ) -> List[ChatEvent]:
        """Events whose adjusted timestamp lies in the inclusive range, in log order.

        The bounds may be given in either order.
        """
        low, high = min(from_second, to_second), max(from_second, to_second)
        start = self._lower(low, offset)
        end = self._lower(high + 1, offset)
        return _unrevealed(self._events[start:end], revealed)

    def preceding(
        self,
        second: int,
        offset: int,
        count: int,
        revealed: Optional[RevealedSet] = None,
    ) -> List[ChatEvent]:
        """Up to ``count`` most recent events strictly before ``second``, in log order."""
        if count <= 0:
            return []

        collected: List[ChatEvent] = []
        index = self.find_last_before(second, offset, revealed)
        while index is not None and index >= 0 and len(collected) < count:
            event = self._events[index]
            if revealed is None or event.id not in revealed:
                collected.append(event)
            index -= 1

        collected.reverse()
        return collected
