"""In-memory chat feed used as the replay engine's sink."""

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from vodchat.services.replay.models import ChatEvent

from .rendering import RenderedMessage

logger = logging.getLogger(__name__)


class FeedSink:
    """Displayed chat feed.

    Keeps rendered messages in reveal order and models the viewer's scroll
    position: the feed follows new messages until the viewer scrolls away,
    and follows again once scrolled back to the bottom.
    """

    def __init__(
        self,
        renderer: Callable[[ChatEvent], RenderedMessage],
        max_items: Optional[int] = None,
    ):
        """
        Initialize the feed.

        Args:
            renderer: Turns an event into a display unit
            max_items: Oldest messages are dropped beyond this many
        """
        self.renderer = renderer
        self.max_items = max_items
        self._items: Deque[RenderedMessage] = deque(maxlen=max_items)
        self._following = True
        self.scroll_requests = 0
        self.clears = 0

    @property
    def items(self) -> List[RenderedMessage]:
        return list(self._items)

    @property
    def event_ids(self) -> List[str]:
        return [item.event_id for item in self._items]

    def reveal(self, event: ChatEvent) -> None:
        self._items.append(self.renderer(event))

    def is_near_bottom(self) -> bool:
        return self._following

    def scroll_to_bottom(self) -> None:
        self.scroll_requests += 1
        self._following = True

    def unfollow(self) -> None:
        """The viewer scrolled up."""
        self._following = False

    def follow(self) -> None:
        """The viewer scrolled back to the bottom."""
        self._following = True

    def clear(self) -> None:
        self._items.clear()
        self.clears += 1

    def __len__(self) -> int:
        return len(self._items)
