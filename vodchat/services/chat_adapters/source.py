"""Chat log retrieval.

Chat logs are static JSON documents published per recorded stream. This
module fetches them over HTTP, along with the optional table of suggested
per-video offsets, and loads the JSON resources bundled with the package.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiohttp
import backoff
from aiohttp import ClientSession
from pydantic import ValidationError

from vodchat.core.config import Settings, get_settings
from vodchat.domain.exceptions import LogSourceError
from vodchat.infrastructure.observability import create_span

from .models import ChatLogDocument, ImageCatalog

logger = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent.parent.parent / "resources"


class ChatLogSource:
    """Fetches chat logs and suggested offsets from their hosts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[ClientSession] = None,
    ):
        """
        Initialize the chat log source.

        Args:
            settings: Application settings, defaults to the cached settings
            session: Optional aiohttp session
        """
        self.settings = settings or get_settings()

        self._session = session
        self._session_owned = session is None
        self._offset_hints: Optional[Dict[str, int]] = None

    @property
    def session(self) -> ClientSession:
        """Get the HTTP session, creating one if necessary."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.http_timeout_seconds)
            self._session = ClientSession(timeout=timeout)
            self._session_owned = True
        return self._session

    def chat_url(self, log_id: str, environment: Optional[str] = None) -> str:
        """URL of a chat log on the production or local development host."""
        if environment is None:
            production = self.settings.is_production
        else:
            production = environment == "production"
        if production:
            template = self.settings.chat_url_template
        else:
            template = self.settings.dev_chat_url_template
        return template.format(log_id=log_id)

    async def fetch_chat_log(
        self, log_id: str, environment: Optional[str] = None
    ) -> ChatLogDocument:
        """Fetch and parse a chat log.

        Args:
            log_id: Chat log identifier
            environment: Host selection, defaults to the configured environment

        Returns:
            ChatLogDocument: The parsed chat log

        Raises:
            LogSourceError: If the log cannot be fetched or parsed
        """
        url = self.chat_url(log_id, environment)
        logger.info(f"Fetching chat log from: {url}")

        with create_span("source.fetch_chat_log", log_id=log_id, url=url):
            data = await self._get_json(url)

        try:
            document = ChatLogDocument.model_validate(data)
        except ValidationError as e:
            raise LogSourceError(f"Malformed chat log {log_id}: {e}", url=url) from e

        logger.info(f"Loaded chat log {log_id} with {len(document.comments)} messages")
        return document

    async def fetch_offset_hints(self) -> Dict[str, int]:
        """Fetch published suggested offsets keyed by video id.

        Hints are optional: any failure is logged and yields an empty table.
        The table is cached for the lifetime of the source.
        """
        if self._offset_hints is not None:
            return self._offset_hints

        url = self.settings.offset_hints_url
        if not url:
            return {}

        try:
            data = await self._get_json(url)
        except LogSourceError as e:
            logger.info(f"Could not load offset hints: {e}")
            return {}

        hints: Dict[str, int] = {}
        if isinstance(data, dict):
            for video_id, value in data.items():
                try:
                    hints[str(video_id)] = int(value)
                except (TypeError, ValueError):
                    logger.debug(f"Ignoring invalid offset hint for {video_id}: {value!r}")

        self._offset_hints = hints
        logger.info(f"Loaded {len(hints)} offset hints")
        return hints

    async def suggested_offset(self, video_id: str) -> Optional[int]:
        """Suggested offset for a video, if one is published."""
        hints = await self.fetch_offset_hints()
        return hints.get(video_id)

    async def _get_json(self, url: str) -> Any:
        try:
            return await self._get_json_with_retry(url)
        except LogSourceError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LogSourceError(f"Failed to fetch {url}: {e}", url=url) from e

    async def _get_json_with_retry(self, url: str) -> Any:
        @backoff.on_exception(
            backoff.expo,
            (aiohttp.ClientError, asyncio.TimeoutError),
            max_tries=self.settings.http_max_retries,
            max_time=self.settings.http_timeout_seconds,
        )
        async def get() -> Any:
            async with self.session.get(url, headers={"Accept": "application/json"}) as response:
                if response.status == 404:
                    raise LogSourceError("Chat log not found", url=url, status=404)
                elif response.status != 200:
                    raise LogSourceError(
                        f"HTTP {response.status} from chat log host",
                        url=url,
                        status=response.status,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    # Undecodable bytes and malformed JSON alike
                    raise LogSourceError(f"Invalid JSON from {url}: {e}", url=url) from e

        return await get()

    async def close(self) -> None:
        """Close the HTTP session if this source created it."""
        if self._session is not None and self._session_owned:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


def _read_json(path: Union[str, Path]) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LogSourceError(f"Failed to read {path}: {e}") from e


def load_image_catalog(path: Union[str, Path, None] = None) -> ImageCatalog:
    """Load the bundled emote and badge catalog."""
    path = path or RESOURCES_DIR / "image_ids.json"
    try:
        return ImageCatalog.model_validate(_read_json(path))
    except ValidationError as e:
        raise LogSourceError(f"Malformed image catalog {path}: {e}") from e


def load_video_mapping(path: Union[str, Path, None] = None) -> Dict[str, str]:
    """Load the bundled video id to chat log id mapping."""
    path = path or RESOURCES_DIR / "video_logs.json"
    data = _read_json(path)
    if not isinstance(data, dict):
        raise LogSourceError(f"Video mapping {path} must be a JSON object")
    return {str(video_id): str(log_id) for video_id, log_id in data.items()}
