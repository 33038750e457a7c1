"""Replay of a recorded chat log in step with a seekable media timeline.

The engine samples the media position, classifies each change as a tick,
a small jump or a large jump, and reveals the matching chat events through
a sink without ever showing an event twice between feed resets.
"""

from .engine import ReplayEngine
from .event_index import EventIndex, RevealedSet
from .models import ChatEvent, EventLog, PlaybackPosition, PlaybackTransition, TransitionKind
from .offset import heuristic_offset, resolve_offset
from .scheduler import RevealScheduler, Sink
from .session import ReplaySession, SessionState
from .watcher import MediaHandle, PlaybackWatcher, classify

__all__ = [
    "ChatEvent",
    "EventIndex",
    "EventLog",
    "MediaHandle",
    "PlaybackPosition",
    "PlaybackTransition",
    "PlaybackWatcher",
    "ReplayEngine",
    "ReplaySession",
    "RevealScheduler",
    "RevealedSet",
    "SessionState",
    "Sink",
    "TransitionKind",
    "classify",
    "heuristic_offset",
    "resolve_offset",
]
