"""User preferences for chat replay.

Preferences (offset, sync and scroll toggles, manual links) are edited at
runtime and persisted as JSON. The engine must work with every field
defaulted, so an unreadable store yields defaults instead of failing.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ReplaySettings(BaseModel):
    """Preferences consumed by the replay controller."""

    time_offset: Optional[int] = Field(
        default=None, description="Explicit offset in seconds, None to estimate"
    )
    enable_sync: bool = Field(default=True, description="Replay chat at all")
    auto_scroll: bool = Field(
        default=True, description="Scroll to new messages even when scrolled away"
    )
    environment: Literal["production", "development"] = Field(
        default="production", description="Chat log host to use"
    )
    manual_links: Dict[str, str] = Field(
        default_factory=dict, description="User-provided video to chat log links"
    )


class JsonSettingsStore:
    """Persists ``ReplaySettings`` to a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> ReplaySettings:
        """Load settings, falling back to defaults if the file is unusable."""
        if not self.path.exists():
            return ReplaySettings()

        try:
            with open(self.path, encoding="utf-8") as f:
                return ReplaySettings.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to load settings from {self.path}: {e}")
            return ReplaySettings()

    def save(self, settings: ReplaySettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def update(self, **changes) -> ReplaySettings:
        """Apply changes to the stored settings and persist them.

        Raises:
            ValidationError: If a change has an invalid value
        """
        current = self.load()
        updated = ReplaySettings.model_validate({**current.model_dump(), **changes})
        self.save(updated)
        logger.debug(f"Settings updated: {sorted(changes)}")
        return updated


class MemorySettingsStore:
    """Non-persistent store with the same interface as ``JsonSettingsStore``."""

    def __init__(self, settings: Optional[ReplaySettings] = None):
        self._settings = settings or ReplaySettings()

    def load(self) -> ReplaySettings:
        return self._settings.model_copy(deep=True)

    def save(self, settings: ReplaySettings) -> None:
        self._settings = settings.model_copy(deep=True)

    def update(self, **changes) -> ReplaySettings:
        updated = ReplaySettings.model_validate({**self._settings.model_dump(), **changes})
        self.save(updated)
        return updated
