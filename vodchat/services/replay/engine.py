"""Replay engine: the entry point collaborators use to drive chat replay.

The engine holds at most one session at a time. Starting a session for a
different log or media tears the previous one down first, so two sampling
loops can never reveal into the same feed.
"""

import logging
import math
import numbers
from typing import Any, Optional

from vodchat.core.config import Settings, get_settings
from vodchat.domain.exceptions import (
    InvalidEventLogError,
    InvalidOffsetError,
    MediaUnavailableError,
)
from vodchat.infrastructure.observability import create_span

from .models import EventLog
from .scheduler import Sink
from .session import ReplaySession, SessionState
from .watcher import MediaHandle

logger = logging.getLogger(__name__)


class ReplayEngine:
    """Owns the active replay session."""

    def __init__(self, settings: Optional[Settings] = None, *, auto_scroll: bool = True):
        self.settings = settings or get_settings()
        self.session: Optional[ReplaySession] = None
        self.offset: Optional[int] = None
        self._auto_scroll = auto_scroll

    @property
    def state(self) -> SessionState:
        if self.session is None:
            return SessionState.IDLE
        return self.session.state

    @property
    def is_tracking(self) -> bool:
        return self.session is not None and self.session.is_alive

    @property
    def auto_scroll(self) -> bool:
        return self._auto_scroll

    @auto_scroll.setter
    def auto_scroll(self, value: bool) -> None:
        self._auto_scroll = value
        if self.session is not None:
            self.session.auto_scroll = value

    async def start_session(
        self,
        log: Optional[EventLog],
        offset: int,
        media: Optional[MediaHandle],
        sink: Sink,
    ) -> ReplaySession:
        """Start replaying ``log`` against ``media``.

        Idempotent while already tracking the same log and media pair.

        Args:
            log: Chat log to replay
            offset: Seconds added to raw timestamps
            media: Media handle driving the replay
            sink: Destination for revealed events

        Returns:
            ReplaySession: The tracking session

        Raises:
            InvalidEventLogError: If the log is missing or empty
            InvalidOffsetError: If the offset is not a finite number
            MediaUnavailableError: If the media handle is missing or unreadable
        """
        if self.session is not None and self.session.is_alive and self.session.matches(log, media):
            logger.debug("Replay session already tracking this log and media")
            return self.session

        self._validate_inputs(log, offset, media)

        if self.session is not None:
            await self.stop_session()

        with create_span(
            "replay.start_session", log_id=log.log_id, events=len(log), offset=offset
        ):
            session = ReplaySession(
                log,
                offset,
                media,
                sink,
                settings=self.settings,
                auto_scroll=self._auto_scroll,
            )
            session.start()

        self.session = session
        self.offset = session.offset
        return session

    def update_offset(self, new_offset: int) -> None:
        """Apply a new offset.

        While tracking the feed is rebuilt at the current position; otherwise
        only the stored value changes.
        """
        self.offset = int(new_offset)

        if not self.is_tracking:
            logger.debug(f"Stored offset {self.offset}s, no session tracking")
            if self.session is not None:
                self.session.offset = self.offset
            return

        with create_span("replay.update_offset", offset=self.offset):
            self.session.update_offset(self.offset)

    async def stop_session(self) -> None:
        """Tear down the current session, cancelling all pending work."""
        session, self.session = self.session, None
        if session is None:
            return

        await session.stop()
        logger.info(f"Stopped replay session {session.session_id}")

    def _validate_inputs(
        self, log: Optional[EventLog], offset: Any, media: Optional[MediaHandle]
    ) -> None:
        if log is None:
            raise InvalidEventLogError("No chat log available")
        if not isinstance(log, EventLog):
            raise InvalidEventLogError("Chat log must be an EventLog", invalid_value=type(log).__name__)
        if len(log) == 0:
            raise InvalidEventLogError("Chat log contains no events")

        if (
            isinstance(offset, bool)
            or not isinstance(offset, numbers.Real)
            or not math.isfinite(offset)
        ):
            raise InvalidOffsetError(offset)

        if media is None:
            raise MediaUnavailableError()
        try:
            media.current_time
            media.paused
        except MediaUnavailableError:
            raise
        except Exception as e:
            raise MediaUnavailableError(f"Media element is not readable: {e}") from e
