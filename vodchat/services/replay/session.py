"""Replay session: one activation of the engine for one chat log and one media.

A session owns everything that must not outlive it: the event index, the
revealed set, the playback position, the sampling loop and the pending
staggered reveals. Nothing is shared between sessions.
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from vodchat.core.config import Settings, get_settings
from vodchat.domain.exceptions import MediaUnavailableError, SessionStateError

from .event_index import EventIndex, RevealedSet
from .models import EventLog, PlaybackPosition, PlaybackTransition
from .scheduler import RevealScheduler, Sink
from .watcher import MediaHandle, PlaybackWatcher, classify

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a replay session."""

    IDLE = "idle"
    TRACKING = "tracking"
    DISPOSED = "disposed"


class ReplaySession:
    """Binds a chat log to a media handle and keeps the feed in step with it."""

    def __init__(
        self,
        log: EventLog,
        offset: int,
        media: MediaHandle,
        sink: Sink,
        *,
        settings: Optional[Settings] = None,
        auto_scroll: bool = True,
        loop=None,
    ):
        """
        Initialize the replay session.

        Args:
            log: Chat log to replay
            offset: Seconds added to raw timestamps
            media: Media handle driving the replay
            sink: Destination for revealed events
            settings: Engine settings, defaults to the cached settings
            auto_scroll: Scroll after every reveal, not only near the bottom
            loop: Event loop for deferred reveals, defaults to the running loop
        """
        self.settings = settings or get_settings()
        self.session_id = str(uuid.uuid4())
        self.log = log
        self.media = media
        self.sink = sink
        self.offset = int(offset)
        self.state = SessionState.IDLE
        self.started_at: Optional[datetime] = None

        self.index = EventIndex(log)
        self.revealed = RevealedSet()
        self.position = PlaybackPosition()

        self.scheduler = RevealScheduler(
            self.index,
            self.revealed,
            sink,
            lambda: self.offset,
            stagger_window=self.settings.stagger_window_seconds,
            context_count=self.settings.context_message_count,
            auto_scroll=auto_scroll,
            loop=loop,
            is_alive=lambda: self.is_alive,
        )
        self.watcher = PlaybackWatcher(
            media,
            self._on_transition,
            position=self.position,
            interval=self.settings.sample_interval_seconds,
            large_jump_threshold=self.settings.large_jump_threshold_seconds,
            on_media_lost=self.demote,
        )

        self.offset_changes = 0

    @property
    def is_alive(self) -> bool:
        return self.state == SessionState.TRACKING

    @property
    def auto_scroll(self) -> bool:
        return self.scheduler.auto_scroll

    @auto_scroll.setter
    def auto_scroll(self, value: bool) -> None:
        self.scheduler.auto_scroll = value

    def matches(self, log: EventLog, media: MediaHandle) -> bool:
        """Check if this session replays ``log`` against ``media``."""
        return self.log is log and self.media is media

    def start(self) -> None:
        """Start tracking the media position."""
        if self.state == SessionState.DISPOSED:
            raise SessionStateError("start", self.state.value)
        if self.state == SessionState.TRACKING:
            return

        self.state = SessionState.TRACKING
        self.started_at = datetime.now(timezone.utc)
        self.watcher.start()
        logger.info(
            f"Replay session {self.session_id} tracking {len(self.log)} events "
            f"(offset: {self.offset}s)"
        )

    def update_offset(self, new_offset: int) -> None:
        """Apply a new offset, rebuilding the feed at the current position.

        Equivalent to a fresh large jump to the current second under the new
        offset. While not tracking only the stored offset changes.
        """
        new_offset = int(new_offset)
        if new_offset == self.offset:
            return

        old_offset, self.offset = self.offset, new_offset
        self.offset_changes += 1
        logger.info(f"Offset changed from {old_offset}s to {new_offset}s")

        if not self.is_alive:
            return

        self.scheduler.reset_feed()
        self.position.reset()

        try:
            current_time = self.media.current_time
        except MediaUnavailableError:
            logger.warning("Media element lost while applying new offset")
            self.demote()
            return

        if current_time is None or not math.isfinite(current_time):
            return

        second = math.floor(current_time)
        self.position.observe(second)
        transition = PlaybackTransition(
            kind=classify(None, second),
            previous_second=None,
            current_second=second,
        )
        self.position.commit()
        self._on_transition(transition)

    def demote(self) -> None:
        """Drop back to idle after losing the media element."""
        if self.state != SessionState.TRACKING:
            return

        self.state = SessionState.IDLE
        self.watcher.cancel()
        self.scheduler.cancel_pending()
        self.revealed.clear()
        self.position = PlaybackPosition()
        self.watcher.position = self.position
        logger.warning(f"Replay session {self.session_id} demoted to idle")

    def dispose(self) -> None:
        """Cancel all pending work and release the session's state."""
        if self.state == SessionState.DISPOSED:
            return

        self.state = SessionState.DISPOSED
        self.watcher.cancel()
        cancelled = self.scheduler.cancel_pending()
        self.revealed.clear()
        logger.info(
            f"Replay session {self.session_id} disposed "
            f"(revealed: {self.scheduler.reveal_count}, cancelled: {cancelled})"
        )

    async def stop(self) -> None:
        """Dispose the session and wait for the sampling loop to exit."""
        await self.watcher.stop()
        self.dispose()

    def _on_transition(self, transition: PlaybackTransition) -> None:
        if not self.is_alive:
            return
        self.scheduler.handle(transition)

    def get_metrics(self) -> Dict[str, Any]:
        """Get session metrics.

        Returns:
            Dictionary of metrics
        """
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "log_id": self.log.log_id,
            "events": len(self.log),
            "offset": self.offset,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "current_second": self.position.current_second,
            "revealed": len(self.revealed),
            "reveals": self.scheduler.reveal_count,
            "reveal_failures": self.scheduler.failure_count,
            "pending_reveals": self.scheduler.pending_count,
            "offset_changes": self.offset_changes,
            "samples": self.watcher.samples_taken,
        }

    def __repr__(self) -> str:
        return (
            f"ReplaySession(id='{self.session_id}', state={self.state.value}, "
            f"offset={self.offset})"
        )
