"""Rendering of chat events into display units.

Rendering is a pure function of the event, the log's commenter table and the
image catalog. Emote words are replaced by emote images; badges and author
colours come from the commenter table.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Union

from vodchat.services.replay.models import ChatEvent

from .models import Comment, Commenter, ImageCatalog

logger = logging.getLogger(__name__)

EMOTE_URL_TEMPLATE = "https://static-cdn.jtvnw.net/emoticons/v1/{id}/1.0"
BADGE_URL_TEMPLATE = "https://static-cdn.jtvnw.net/badges/v1/{id}/1"
PROFILE_URL_TEMPLATE = "https://twitch.tv/{name}"
DEFAULT_AUTHOR_COLOR = "#fff"


@dataclass(frozen=True)
class TextFragment:
    text: str


@dataclass(frozen=True)
class EmoteFragment:
    name: str
    emote_id: str
    url: str


Fragment = Union[TextFragment, EmoteFragment]


@dataclass(frozen=True)
class RenderedMessage:
    """A chat event ready for display."""

    event_id: str
    author: str
    author_color: str
    profile_url: Optional[str]
    badge_urls: List[str] = field(default_factory=list)
    fragments: List[Fragment] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Plain text of the message, emotes written as their names."""
        return " ".join(
            f.text if isinstance(f, TextFragment) else f.name for f in self.fragments
        )


def render_fragments(text: str, catalog: Optional[ImageCatalog]) -> List[Fragment]:
    """Split a message on whitespace and replace known emote words."""
    emoticons = catalog.emoticons if catalog else {}
    fragments: List[Fragment] = []
    for word in text.split():
        emote_id = emoticons.get(word)
        if emote_id:
            fragments.append(
                EmoteFragment(word, emote_id, EMOTE_URL_TEMPLATE.format(id=emote_id))
            )
        else:
            fragments.append(TextFragment(word))
    return fragments


def render_badges(author: Commenter, catalog: Optional[ImageCatalog]) -> List[str]:
    """Badge image URLs for an author, skipping unknown badges and versions."""
    if catalog is None:
        return []

    urls = []
    for badge in author.badges:
        image_id = catalog.badge_image(badge.id, badge.version)
        if image_id is None:
            logger.debug(f"Badge {badge.id} version {badge.version} not in catalog")
            continue
        urls.append(BADGE_URL_TEMPLATE.format(id=image_id))
    return urls


def render_comment(
    event: ChatEvent,
    commenters: Mapping[str, Commenter],
    catalog: Optional[ImageCatalog] = None,
) -> RenderedMessage:
    """Render a chat event whose payload is a ``Comment``.

    Events with an unknown author are still rendered, attributed to the
    raw commenter id without profile link or badges.
    """
    comment = event.payload
    if not isinstance(comment, Comment):
        raise TypeError(f"Event {event.id} does not carry a chat comment")

    author = commenters.get(comment.commenter)
    fragments = render_fragments(comment.message, catalog)

    if author is None:
        logger.warning(f"Unknown commenter {comment.commenter} for event {event.id}")
        return RenderedMessage(
            event_id=event.id,
            author=comment.commenter,
            author_color=DEFAULT_AUTHOR_COLOR,
            profile_url=None,
            fragments=fragments,
        )

    return RenderedMessage(
        event_id=event.id,
        author=author.label,
        author_color=author.color or DEFAULT_AUTHOR_COLOR,
        profile_url=PROFILE_URL_TEMPLATE.format(name=author.name),
        badge_urls=render_badges(author, catalog),
        fragments=fragments,
    )
