"""Chat log collaborators of the replay engine.

This module provides the chat log wire models, the HTTP log source, the
video to chat log link registry, the renderer and the in-memory feed sink.
"""

from .feed import FeedSink
from .links import VideoLinkRegistry
from .models import BadgeRef, ChatLogDocument, Comment, Commenter, ImageCatalog
from .rendering import EmoteFragment, RenderedMessage, TextFragment, render_comment
from .source import ChatLogSource, load_image_catalog, load_video_mapping

__all__ = [
    "BadgeRef",
    "ChatLogDocument",
    "ChatLogSource",
    "Comment",
    "Commenter",
    "EmoteFragment",
    "FeedSink",
    "ImageCatalog",
    "RenderedMessage",
    "TextFragment",
    "VideoLinkRegistry",
    "load_image_catalog",
    "load_video_mapping",
    "render_comment",
]
