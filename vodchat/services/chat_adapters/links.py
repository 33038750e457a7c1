"""Mapping from video ids to the chat logs recorded alongside them."""

import logging
from typing import Dict, Mapping, Optional

from vodchat.domain.exceptions import LinkError

logger = logging.getLogger(__name__)


class VideoLinkRegistry:
    """Resolves which chat log belongs to a video.

    Bundled links ship with the application; manual links are added by the
    user and take precedence over bundled ones.
    """

    def __init__(
        self,
        bundled: Optional[Mapping[str, str]] = None,
        manual: Optional[Mapping[str, str]] = None,
    ):
        self.bundled: Dict[str, str] = dict(bundled or {})
        self.manual: Dict[str, str] = dict(manual or {})

    def resolve(self, video_id: Optional[str]) -> Optional[str]:
        """Chat log id for a video, or None if the video is not linked."""
        if not video_id:
            return None
        return self.manual.get(video_id) or self.bundled.get(video_id)

    def is_known(self, video_id: Optional[str]) -> bool:
        return self.resolve(video_id) is not None

    def link(self, video_id: str, log_id: str) -> None:
        """Add or replace a manual link.

        Raises:
            LinkError: If either id is empty
        """
        if not video_id:
            raise LinkError("No video id provided")
        if not log_id:
            raise LinkError("No chat log id provided", video_id=video_id)

        self.manual[video_id] = log_id
        logger.info(f"Linked video {video_id} -> chat log {log_id}")

    def unlink(self, video_id: str) -> bool:
        """Remove a manual link.

        Returns:
            bool: False if the video had no manual link
        """
        if not video_id:
            raise LinkError("No video id provided")
        if self.manual.pop(video_id, None) is None:
            return False

        logger.info(f"Removed manual link for video {video_id}")
        return True

    def __len__(self) -> int:
        return len(set(self.bundled) | set(self.manual))
