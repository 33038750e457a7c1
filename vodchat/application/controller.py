"""Replay controller: the command surface of the chat replay application.

The controller resolves which chat log belongs to the current video, loads
it, settles the offset and drives the replay engine. It also serves the
runtime commands a settings panel issues: settings changes, resets, manual
link management and status queries.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Optional

from vodchat.core.config import Settings, get_settings
from vodchat.core.settings_store import ReplaySettings
from vodchat.domain.exceptions import LinkError, MediaUnavailableError, ReplayError
from vodchat.infrastructure.observability import create_span, log_event
from vodchat.services.chat_adapters.feed import FeedSink
from vodchat.services.chat_adapters.links import VideoLinkRegistry
from vodchat.services.chat_adapters.models import ImageCatalog
from vodchat.services.chat_adapters.rendering import render_comment
from vodchat.services.chat_adapters.source import ChatLogSource
from vodchat.services.replay.engine import ReplayEngine
from vodchat.services.replay.models import EventLog
from vodchat.services.replay.offset import resolve_offset
from vodchat.services.replay.scheduler import Sink
from vodchat.services.replay.watcher import MediaHandle

logger = logging.getLogger(__name__)


@dataclass
class ControllerStatus:
    """Snapshot reported to the settings panel."""

    active: bool
    message: str
    manual_link_mode: bool
    pending_video_id: Optional[str]
    video_id: Optional[str]
    settings: ReplaySettings
    session: Dict[str, Any] = field(default_factory=dict)


class ReplayController:
    """Wires the chat log source, link registry and replay engine together."""

    def __init__(
        self,
        source: ChatLogSource,
        store,
        links: VideoLinkRegistry,
        media_provider: Callable[[], Optional[MediaHandle]],
        *,
        engine: Optional[ReplayEngine] = None,
        catalog: Optional[ImageCatalog] = None,
        sink_factory: Optional[Callable[[EventLog], Sink]] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the controller.

        Args:
            source: Chat log source
            store: Preference store (``load``/``save``/``update``)
            links: Video to chat log link registry
            media_provider: Returns the current media handle, or None
            engine: Replay engine, created if not given
            catalog: Emote and badge catalog used by the default sink
            sink_factory: Builds the sink for a loaded log
            settings: Application settings, defaults to the cached settings
        """
        self.settings = settings or get_settings()
        self.source = source
        self.store = store
        self.links = links
        self.media_provider = media_provider
        self.engine = engine or ReplayEngine(self.settings)
        self.catalog = catalog
        self.sink_factory = sink_factory or self._default_sink

        self.video_id: Optional[str] = None
        self.log_id: Optional[str] = None
        self.sink: Optional[Sink] = None
        self.is_active = False
        self.manual_link_mode = False
        self.pending_video_id: Optional[str] = None

    def _default_sink(self, log: EventLog) -> Sink:
        renderer = partial(render_comment, commenters=log.commenters, catalog=self.catalog)
        return FeedSink(renderer)

    async def initialize(self, video_id: Optional[str]) -> bool:
        """Start replaying the chat log linked to ``video_id``.

        A failed initialization also stops any replay still running.

        Returns:
            bool: True if a replay session is tracking afterwards
        """
        self.video_id = video_id
        preferences = self.store.load()

        if not preferences.enable_sync:
            logger.info("Chat sync disabled, not initializing")
            await self.stop()
            return False

        self.links.manual.update(preferences.manual_links)
        log_id = self.links.resolve(video_id)
        if log_id is None:
            logger.info(f"No chat log linked to video {video_id or 'none'}, waiting for manual link")
            self.manual_link_mode = True
            self.pending_video_id = video_id
            await self.stop()
            return False

        logger.info(f"Found chat log {log_id} for video {video_id}")

        try:
            with create_span("controller.initialize", video_id=video_id, log_id=log_id):
                preferences = await self._apply_suggested_offset(video_id, preferences)

                document = await self.source.fetch_chat_log(log_id, preferences.environment)
                if document.is_empty:
                    logger.info(f"Chat log {log_id} has no messages")
                    await self.stop()
                    return False
                log = document.to_event_log(log_id)

                media = self.media_provider()
                if media is None:
                    raise MediaUnavailableError("No media element to synchronize with")

                offset = resolve_offset(
                    preferences.time_offset,
                    media.duration,
                    log.last_timestamp,
                    fallback=self.settings.fallback_offset_seconds,
                    bound=self.settings.offset_sanity_bound_seconds,
                )
                if preferences.time_offset is None:
                    self.store.update(time_offset=offset)

                self.sink = self.sink_factory(log)
                self.engine.auto_scroll = preferences.auto_scroll
                await self.engine.start_session(log, offset, media, self.sink)

        except ReplayError as e:
            logger.error(f"Failed to initialize chat replay for video {video_id}: {e}")
            log_event(
                "initialize_failed",
                "session",
                video_id=video_id,
                error=e.message,
                **e.context.to_dict(),
            )
            await self.stop()
            return False

        self.log_id = log_id
        self.is_active = True
        logger.info(f"Chat replay initialized for video {video_id}")
        log_event("initialized", "session", video_id=video_id, log_id=log_id)
        return True

    async def _apply_suggested_offset(
        self, video_id: Optional[str], preferences: ReplaySettings
    ) -> ReplaySettings:
        if not video_id:
            return preferences

        suggested = await self.source.suggested_offset(video_id)
        if suggested is None:
            return preferences

        logger.info(f"Applying suggested offset {suggested}s for video {video_id}")
        return self.store.update(time_offset=suggested)

    async def update_settings(self, **changes) -> ReplaySettings:
        """Persist preference changes and apply them to the running replay."""
        previous = self.store.load()
        updated = self.store.update(**changes)

        self.engine.auto_scroll = updated.auto_scroll

        if not updated.enable_sync and self.is_active:
            await self.stop()
        elif updated.time_offset is not None and updated.time_offset != previous.time_offset:
            self.engine.update_offset(updated.time_offset)

        return updated

    async def reset(self) -> bool:
        """Tear down and re-initialize the current video."""
        await self.stop()
        if not self.store.load().enable_sync:
            return False
        return await self.initialize(self.video_id)

    async def link_log(self, log_id: str, video_id: Optional[str] = None) -> bool:
        """Manually link a chat log to a video and start replaying it.

        Raises:
            LinkError: If no video id is known or the log id is empty
        """
        video_id = video_id or self.pending_video_id
        if not video_id:
            raise LinkError("No video id provided")

        self.links.link(video_id, log_id)
        self._persist_manual_links()
        log_event("linked", "link", video_id=video_id, log_id=log_id)

        if self.manual_link_mode and self.pending_video_id == video_id:
            self.manual_link_mode = False
            self.pending_video_id = None

        await self.stop()
        return await self.initialize(video_id)

    async def unlink_log(self, video_id: str) -> None:
        """Remove a manual link and stop replaying.

        Raises:
            LinkError: If the video has no manual link
        """
        if not self.links.unlink(video_id):
            raise LinkError("No manual link found for this video", video_id=video_id)

        self._persist_manual_links()
        await self.stop()
        log_event("unlinked", "link", video_id=video_id)

    def _persist_manual_links(self) -> None:
        self.store.update(manual_links=dict(self.links.manual))

    async def navigate(self, video_id: Optional[str]) -> bool:
        """Switch to a different video."""
        if video_id == self.video_id and self.engine.is_tracking:
            return True

        await self.stop()
        self.manual_link_mode = False
        self.pending_video_id = None
        return await self.initialize(video_id)

    def current_time(self) -> Optional[float]:
        """Current media position, or None without a media element."""
        media = self.media_provider()
        if media is None:
            return None
        try:
            return media.current_time
        except MediaUnavailableError:
            return None

    def status(self) -> ControllerStatus:
        """Report the controller's state."""
        active = self.is_active and self.engine.is_tracking
        if active:
            message = "Chat synchronized"
        elif self.manual_link_mode:
            message = "Waiting for chat log link"
        elif self.links.is_known(self.video_id):
            message = "Chat not synchronized"
        else:
            message = "No chat log for this video"

        session = self.engine.session
        return ControllerStatus(
            active=active,
            message=message,
            manual_link_mode=self.manual_link_mode,
            pending_video_id=self.pending_video_id,
            video_id=self.video_id,
            settings=self.store.load(),
            session=session.get_metrics() if session else {},
        )

    async def stop(self) -> None:
        """Stop replaying, keeping manual link mode as it is."""
        await self.engine.stop_session()
        self.is_active = False
        self.log_id = None
        self.sink = None

    async def shutdown(self) -> None:
        """Stop replaying and release the chat log source."""
        await self.stop()
        await self.source.close()
