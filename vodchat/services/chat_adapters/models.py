"""Data models for recorded chat logs and their image metadata.

This module contains Pydantic models for the chat log JSON served by the log
host (comments plus a commenter table) and for the bundled emote and badge
catalog.
"""

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, ConfigDict, field_validator

from vodchat.services.replay.models import ChatEvent, EventLog


class BadgeRef(BaseModel):
    """Badge worn by a commenter."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="_id")
    version: str = "1"

    @field_validator("id", "version", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return str(v)


class Commenter(BaseModel):
    """Author of chat comments."""
    model_config = ConfigDict(extra="allow")

    name: str
    display_name: Optional[str] = None
    color: Optional[str] = None
    badges: List[BadgeRef] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return self.display_name or self.name


class Comment(BaseModel):
    """A single recorded chat comment."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(default=None, alias="_id")
    commenter: str
    content_offset_seconds: float
    message: str = ""

    @field_validator("id", "commenter", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("message", mode="before")
    @classmethod
    def flatten_message(cls, v: Any) -> str:
        # Some exports nest the text as {"body": ...}
        if isinstance(v, dict):
            return str(v.get("body", ""))
        return "" if v is None else str(v)


class ChatLogDocument(BaseModel):
    """Chat log as served by the log host."""
    model_config = ConfigDict(extra="allow")

    comments: List[Comment] = Field(default_factory=list)
    commenters: Dict[str, Commenter] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.comments

    def to_event_log(self, log_id: Optional[str] = None) -> EventLog:
        """Convert to an ``EventLog``.

        Comments are stably sorted by offset. Comments without an id are
        identified by their position in the document.
        """
        indexed = sorted(
            enumerate(self.comments), key=lambda item: item[1].content_offset_seconds
        )
        events = [
            ChatEvent(
                id=comment.id if comment.id is not None else str(position),
                raw_timestamp=comment.content_offset_seconds,
                payload=comment,
            )
            for position, comment in indexed
        ]
        return EventLog.from_events(events, commenters=self.commenters, log_id=log_id)


class ImageCatalog(BaseModel):
    """Emote and badge image ids bundled with the application."""
    model_config = ConfigDict(extra="allow")

    emoticons: Dict[str, str] = Field(default_factory=dict)
    badges: Dict[str, Dict[int, str]] = Field(default_factory=dict)

    @field_validator("emoticons", mode="before")
    @classmethod
    def coerce_emote_ids(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(word): str(emote_id) for word, emote_id in v.items()}
        return v

    @field_validator("badges", mode="before")
    @classmethod
    def normalize_versions(cls, v: Any) -> Any:
        # Versions are either a list indexed by version number or a mapping
        if not isinstance(v, dict):
            return v
        normalized: Dict[str, Dict[int, str]] = {}
        for badge_id, versions in v.items():
            if isinstance(versions, list):
                items = enumerate(versions)
            elif isinstance(versions, dict):
                items = versions.items()
            else:
                continue
            normalized[str(badge_id)] = {
                int(version): str(image_id)
                for version, image_id in items
                if image_id is not None
            }
        return normalized

    def badge_image(self, badge_id: str, version: str) -> Optional[str]:
        """Image id for a badge version, or None if unknown."""
        try:
            return self.badges.get(badge_id, {}).get(int(version))
        except ValueError:
            return None
