"""Reveal scheduler: decides which events to show for a playback transition.

Three strategies are applied depending on the transition:

- a one second tick reveals the events of the new second, spread evenly
  across the following second so bursts read as a sequential feed. Reveals
  still pending from the previous second are shown first, which keeps the
  feed ordered when playback runs faster than real time;
- a small jump backfills the skipped window immediately;
- a large jump rebuilds the feed with the most recent events before the new
  position for context.

Membership is claimed when an event is scheduled, not when it is shown, so
overlapping stagger windows from consecutive ticks cannot schedule the same
event twice.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from .event_index import EventIndex, RevealedSet
from .models import ChatEvent, PlaybackTransition, TransitionKind

logger = logging.getLogger(__name__)

DEFAULT_STAGGER_WINDOW = 1.0
DEFAULT_CONTEXT_COUNT = 25


@runtime_checkable
class Sink(Protocol):
    """Displays revealed events. Any method may raise."""

    def reveal(self, event: ChatEvent) -> None: ...

    def is_near_bottom(self) -> bool: ...

    def scroll_to_bottom(self) -> None: ...

    def clear(self) -> None: ...


class RevealScheduler:
    """Selects events for each transition and hands them to a sink in order."""

    def __init__(
        self,
        index: EventIndex,
        revealed: RevealedSet,
        sink: Sink,
        offset_provider: Callable[[], int],
        *,
        stagger_window: float = DEFAULT_STAGGER_WINDOW,
        context_count: int = DEFAULT_CONTEXT_COUNT,
        auto_scroll: bool = True,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        is_alive: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the reveal scheduler.

        Args:
            index: Event index of the session's chat log
            revealed: Session membership set
            sink: Destination for revealed events
            offset_provider: Returns the offset currently in effect
            stagger_window: Seconds over which same-second events are spread
            context_count: Events shown for context after a large jump
            auto_scroll: Always scroll after a reveal, not only near the bottom
            loop: Event loop used for deferred reveals, defaults to the running loop
            is_alive: Checked before each deferred reveal fires
        """
        self.index = index
        self.revealed = revealed
        self.sink = sink
        self.offset_provider = offset_provider
        self.stagger_window = stagger_window
        self.context_count = context_count
        self.auto_scroll = auto_scroll
        self._loop = loop
        self._is_alive = is_alive or (lambda: True)

        # Insertion order is reveal order
        self._pending: Dict[asyncio.TimerHandle, ChatEvent] = {}

        self.reveal_count = 0
        self.failure_count = 0

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def offset(self) -> int:
        return self.offset_provider()

    def handle(self, transition: PlaybackTransition) -> None:
        """Apply the reveal strategy for a classified transition."""
        kind = transition.kind
        current = transition.current_second

        if kind == TransitionKind.NO_CHANGE:
            return

        if kind == TransitionKind.LARGE_JUMP:
            self.show_context(current)
        else:
            # Earlier seconds reach the sink before the new one
            self.flush_pending()
            if kind == TransitionKind.SMALL_JUMP:
                self.backfill(transition.previous_second, current)

        self.reveal_staggered(self.index.range_equal(current, self.offset, self.revealed))

    def backfill(self, previous: int, current: int) -> int:
        """Immediately reveal the window skipped between two seconds.

        The window excludes the lower bound, which was already handled when
        playback was there, and includes the upper bound.
        """
        low, high = min(previous, current) + 1, max(previous, current)
        missed = self.index.range_between(low, high, self.offset, self.revealed)
        if missed:
            logger.debug(f"Backfilling {len(missed)} events for seconds {low}-{high}")
        return self.reveal_immediately(missed)

    def show_context(self, current: int) -> int:
        """Rebuild the feed with the events leading up to ``current``."""
        self.reset_feed()
        context = self.index.preceding(
            current, self.offset, self.context_count, self.revealed
        )
        logger.debug(f"Showing {len(context)} context events before second {current}")
        return self.reveal_immediately(context)

    def reset_feed(self) -> None:
        """Cancel pending reveals, forget revealed events and clear the sink."""
        self.cancel_pending()
        self.revealed.clear()
        try:
            self.sink.clear()
        except Exception as e:
            self.failure_count += 1
            logger.error(f"Failed to clear chat feed: {e}")

    def reveal_immediately(self, events: Iterable[ChatEvent]) -> int:
        """Reveal events now, in order, skipping already revealed ones."""
        shown = 0
        for event in events:
            if self.revealed.claim(event.id) and self._deliver(event):
                shown += 1
        return shown

    def reveal_staggered(self, events: Iterable[ChatEvent]) -> List[ChatEvent]:
        """Spread events evenly across the stagger window.

        With ``n`` events the ``i``-th is revealed ``i / n`` of the window
        after now. Returns the events that were scheduled.
        """
        claimed = [event for event in events if self.revealed.claim(event.id)]
        count = len(claimed)
        for i, event in enumerate(claimed):
            self._schedule(i * self.stagger_window / count, event)
        return claimed

    def flush_pending(self) -> int:
        """Reveal every pending staggered event now, preserving order."""
        pending = list(self._pending.items())
        self._pending.clear()

        shown = 0
        for handle, event in pending:
            handle.cancel()
            if self._deliver(event):
                shown += 1
        return shown

    def cancel_pending(self) -> int:
        """Cancel every pending staggered reveal."""
        cancelled = len(self._pending)
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending reveals")
        return cancelled

    def _schedule(self, delay: float, event: ChatEvent) -> None:
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._pending.pop(handle, None)
            if not self._is_alive():
                logger.debug(f"Dropping reveal of {event.id} for an ended session")
                return
            self._deliver(event)

        handle = self.loop.call_later(delay, fire)
        self._pending[handle] = event

    def _deliver(self, event: ChatEvent) -> bool:
        """Hand one event to the sink. Failures are logged, never raised."""
        try:
            near_bottom = self.sink.is_near_bottom()
            self.sink.reveal(event)
            if near_bottom or self.auto_scroll:
                self.sink.scroll_to_bottom()
        except Exception as e:
            self.failure_count += 1
            logger.error(f"Error revealing event {event.id}: {e}")
            return False

        self.reveal_count += 1
        return True
