"""Alignment between the chat log's clock and the media timeline.

Chat logs are recorded against the live stream, while the media being played
is usually an edited upload that starts some time into the stream. The
offset is the number of seconds added to a raw chat timestamp to place it on
the media timeline.
"""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_OFFSET = 900
DEFAULT_SANITY_BOUND = 3600


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def heuristic_offset(
    media_duration: Optional[float],
    last_event_timestamp: Optional[float],
    bound: int = DEFAULT_SANITY_BOUND,
) -> Optional[int]:
    """Estimate the offset assuming the chat log ends where the media ends.

    Returns None when either input is unavailable or non-positive, or when
    the estimate falls outside ``[-bound, bound]``.
    """
    if not _usable(media_duration) or not _usable(last_event_timestamp):
        return None

    candidate = math.floor(media_duration - last_event_timestamp)
    if -bound <= candidate <= bound:
        return candidate

    logger.debug(
        f"Heuristic offset {candidate}s outside +/-{bound}s "
        f"(duration: {media_duration}s, last event: {last_event_timestamp}s)"
    )
    return None


def resolve_offset(
    explicit_offset: Optional[float],
    media_duration: Optional[float],
    last_event_timestamp: Optional[float],
    *,
    fallback: int = DEFAULT_FALLBACK_OFFSET,
    bound: int = DEFAULT_SANITY_BOUND,
) -> int:
    """Resolve the effective offset in seconds.

    An explicit offset, including zero, is always returned unchanged.
    Otherwise the end-alignment heuristic is used, falling back to
    ``fallback`` when it cannot produce a sane value.

    Args:
        explicit_offset: Configured offset, or None when unset
        media_duration: Media duration in seconds, if known
        last_event_timestamp: Raw timestamp of the final chat event
        fallback: Offset used when the heuristic fails
        bound: Largest absolute offset the heuristic may return

    Returns:
        int: Offset in seconds
    """
    if explicit_offset is not None:
        return int(explicit_offset)

    candidate = heuristic_offset(media_duration, last_event_timestamp, bound)
    if candidate is not None:
        logger.info(
            f"Estimated offset: {candidate}s "
            f"(duration: {media_duration}s, last event: {last_event_timestamp}s)"
        )
        return candidate

    logger.info(f"Using fallback offset: {fallback}s")
    return fallback
