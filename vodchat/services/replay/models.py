"""Data model of the replay engine.

A chat log is loaded once per session and never mutated. Events are compared
against the media timeline through their adjusted timestamp, the raw
timestamp shifted by the current offset.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from vodchat.domain.exceptions import InvalidEventLogError


@dataclass(frozen=True)
class ChatEvent:
    """A single recorded chat event."""

    id: str
    raw_timestamp: float               # Seconds since the start of the chat log
    payload: Any = field(default=None, compare=False, hash=False)

    def adjusted_timestamp(self, offset: float) -> float:
        """Timestamp on the media timeline for the given offset."""
        return self.raw_timestamp + offset

    def adjusted_second(self, offset: float) -> int:
        """Playback second the event belongs to for the given offset."""
        return math.floor(self.raw_timestamp + offset)


class EventLog:
    """Ordered, read-only sequence of chat events.

    Events are kept in insertion order, which must also be ascending
    timestamp order. ``commenters`` carries the identity metadata the
    renderer needs to display an event's author.
    """

    def __init__(
        self,
        events: Iterable[ChatEvent],
        commenters: Optional[Mapping[str, Any]] = None,
        log_id: Optional[str] = None,
    ):
        self._events: Tuple[ChatEvent, ...] = tuple(events)
        self.commenters: Dict[str, Any] = dict(commenters or {})
        self.log_id = log_id
        self._validate()

    @classmethod
    def from_events(
        cls,
        events: Iterable[ChatEvent],
        commenters: Optional[Mapping[str, Any]] = None,
        log_id: Optional[str] = None,
    ) -> "EventLog":
        """Build a log, raising ``InvalidEventLogError`` on malformed input."""
        return cls(events, commenters=commenters, log_id=log_id)

    def _validate(self) -> None:
        seen = set()
        previous: Optional[ChatEvent] = None

        for event in self._events:
            if not isinstance(event, ChatEvent):
                raise InvalidEventLogError(
                    "Event log entries must be ChatEvent instances", invalid_value=event
                )
            if not math.isfinite(event.raw_timestamp):
                raise InvalidEventLogError(
                    "Event timestamp must be finite",
                    event_id=event.id,
                    invalid_value=event.raw_timestamp,
                )
            if event.id in seen:
                raise InvalidEventLogError("Duplicate event id", event_id=event.id)
            if previous is not None and event.raw_timestamp < previous.raw_timestamp:
                raise InvalidEventLogError(
                    "Event log is not sorted by timestamp",
                    event_id=event.id,
                    invalid_value=event.raw_timestamp,
                )
            seen.add(event.id)
            previous = event

    @property
    def events(self) -> Tuple[ChatEvent, ...]:
        return self._events

    @property
    def last_timestamp(self) -> Optional[float]:
        """Raw timestamp of the final event, or None for an empty log."""
        return self._events[-1].raw_timestamp if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[ChatEvent]:
        return iter(self._events)

    def __getitem__(self, index: int) -> ChatEvent:
        return self._events[index]

    def __bool__(self) -> bool:
        return bool(self._events)

    def __repr__(self) -> str:
        return f"EventLog(log_id={self.log_id!r}, events={len(self._events)})"


class TransitionKind(str, Enum):
    """Classification of a change in playback position."""

    NO_CHANGE = "no_change"
    TICK = "tick"                      # Moved by exactly one second
    SMALL_JUMP = "small_jump"          # Missed window, backfilled immediately
    LARGE_JUMP = "large_jump"          # Context switch, feed is rebuilt


@dataclass(frozen=True)
class PlaybackTransition:
    """A classified playback position change."""

    kind: TransitionKind
    previous_second: Optional[int]
    current_second: int

    @property
    def distance(self) -> Optional[int]:
        """Absolute jump size, or None when there was no previous sample."""
        if self.previous_second is None:
            return None
        return abs(self.current_second - self.previous_second)


@dataclass
class PlaybackPosition:
    """Playback position as seen by the watcher.

    ``current_second`` is the most recent sample, ``previous_second`` the
    sample the last transition was committed at. ``previous_second`` is
    None until the first transition and after an offset change.
    """

    current_second: Optional[int] = None
    previous_second: Optional[int] = None

    def observe(self, second: int) -> None:
        self.current_second = second

    def commit(self) -> None:
        """Mark the current sample as processed."""
        self.previous_second = self.current_second

    def reset(self) -> None:
        """Forget the processed sample so the next one is a context switch."""
        self.previous_second = None
