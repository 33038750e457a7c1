"""Playback watcher: samples the media position and classifies changes.

The watcher runs one cooperative sampling loop per session. Each sample is
floored to a whole second and compared with the second the previous
transition was committed at; at most one classified transition is emitted
per sample.
"""

import asyncio
import logging
import math
from typing import Callable, Optional, Protocol, runtime_checkable

from vodchat.domain.exceptions import MediaUnavailableError

from .models import PlaybackPosition, PlaybackTransition, TransitionKind

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_INTERVAL = 0.1
DEFAULT_LARGE_JUMP_THRESHOLD = 15


@runtime_checkable
class MediaHandle(Protocol):
    """The media element being played.

    Any attribute access may raise ``MediaUnavailableError`` once the
    element has gone away.
    """

    @property
    def current_time(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    @property
    def duration(self) -> Optional[float]: ...


def classify(
    previous: Optional[int],
    current: int,
    large_jump_threshold: int = DEFAULT_LARGE_JUMP_THRESHOLD,
) -> TransitionKind:
    """Classify a move from ``previous`` to ``current``.

    A missing previous second is a context switch and classifies as a
    large jump.
    """
    if previous is None:
        return TransitionKind.LARGE_JUMP

    distance = abs(current - previous)
    if distance == 0:
        return TransitionKind.NO_CHANGE
    if distance == 1:
        return TransitionKind.TICK
    if distance <= large_jump_threshold:
        return TransitionKind.SMALL_JUMP
    return TransitionKind.LARGE_JUMP


class PlaybackWatcher:
    """Samples a media handle on a fixed interval and raises transitions."""

    def __init__(
        self,
        media: MediaHandle,
        on_transition: Callable[[PlaybackTransition], None],
        *,
        position: Optional[PlaybackPosition] = None,
        interval: float = DEFAULT_SAMPLE_INTERVAL,
        large_jump_threshold: int = DEFAULT_LARGE_JUMP_THRESHOLD,
        on_media_lost: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize the playback watcher.

        Args:
            media: Media handle to sample
            on_transition: Called once per classified transition
            position: Shared playback position, created if not given
            interval: Seconds between samples
            large_jump_threshold: Jumps above this many seconds are large
            on_media_lost: Called when the media handle becomes unavailable
        """
        self.media = media
        self.on_transition = on_transition
        self.position = position or PlaybackPosition()
        self.interval = interval
        self.large_jump_threshold = large_jump_threshold
        self.on_media_lost = on_media_lost

        self._task: Optional[asyncio.Task] = None
        self.samples_taken = 0
        self.transitions_emitted = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def read_second(self) -> Optional[int]:
        """Current playback second, or None while paused or not yet loaded."""
        if self.media.paused:
            return None

        current_time = self.media.current_time
        if current_time is None or not math.isfinite(current_time):
            return None
        return math.floor(current_time)

    def sample(self) -> Optional[PlaybackTransition]:
        """Take one sample and emit a transition if the second changed.

        The position is committed before ``on_transition`` runs, so a
        failing reveal cannot cause the same transition to be processed
        twice.

        Raises:
            MediaUnavailableError: If the media handle has gone away
        """
        self.samples_taken += 1

        second = self.read_second()
        if second is None:
            return None

        self.position.observe(second)
        kind = classify(self.position.previous_second, second, self.large_jump_threshold)
        if kind == TransitionKind.NO_CHANGE:
            return None

        transition = PlaybackTransition(
            kind=kind,
            previous_second=self.position.previous_second,
            current_second=second,
        )
        self.position.commit()
        self.transitions_emitted += 1

        logger.debug(
            f"Playback {kind.value}: {transition.previous_second} -> {second}"
        )
        self.on_transition(transition)
        return transition

    def start(self) -> None:
        """Start the sampling loop, replacing any loop already running."""
        self.cancel()
        self._task = asyncio.create_task(self._sample_loop())
        logger.debug(f"Playback watcher started (interval: {self.interval}s)")

    def cancel(self) -> None:
        """Cancel the sampling loop without waiting for it to finish."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def stop(self) -> None:
        """Stop the sampling loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sample_loop(self) -> None:
        """Background task sampling the media position."""
        while True:
            try:
                self.sample()
            except MediaUnavailableError:
                logger.warning("Media element lost, stopping playback watcher")
                self._task = None
                if self.on_media_lost:
                    self.on_media_lost()
                return
            except Exception as e:
                logger.error(f"Error in playback sampling loop: {e}")

            await asyncio.sleep(self.interval)
