"""Unit tests for video links and persisted preferences."""

import pytest
from pydantic import ValidationError

from vodchat.core.settings_store import JsonSettingsStore, MemorySettingsStore, ReplaySettings
from vodchat.domain.exceptions import LinkError
from vodchat.services.chat_adapters.links import VideoLinkRegistry


class TestVideoLinkRegistry:
    """Test video to chat log resolution."""

    @pytest.fixture
    def registry(self):
        return VideoLinkRegistry(bundled={"vid1": "100", "vid2": "200"}, manual={"vid2": "999"})

    def test_resolve(self, registry):
        """Test manual links take precedence over bundled ones."""
        assert registry.resolve("vid1") == "100"
        assert registry.resolve("vid2") == "999"
        assert registry.resolve("other") is None
        assert registry.resolve(None) is None
        assert registry.resolve("") is None

    def test_link_and_unlink(self, registry):
        """Test adding and removing manual links."""
        registry.link("vid3", "300")
        assert registry.is_known("vid3")
        assert len(registry) == 3

        assert registry.unlink("vid3")
        assert not registry.is_known("vid3")
        assert not registry.unlink("vid3")

    def test_unlink_reveals_bundled_link(self, registry):
        """Test removing an override falls back to the bundled link."""
        registry.unlink("vid2")
        assert registry.resolve("vid2") == "200"

    @pytest.mark.parametrize("video_id,log_id", [("", "1"), ("vid", ""), (None, "1")])
    def test_link_requires_ids(self, registry, video_id, log_id):
        """Test both ids are required."""
        with pytest.raises(LinkError):
            registry.link(video_id, log_id)

    def test_unlink_requires_video_id(self, registry):
        with pytest.raises(LinkError):
            registry.unlink("")


class TestJsonSettingsStore:
    """Test preference persistence."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test a fresh store yields default preferences."""
        settings = JsonSettingsStore(tmp_path / "settings.json").load()

        assert settings == ReplaySettings()
        assert settings.time_offset is None
        assert settings.enable_sync
        assert settings.auto_scroll

    def test_update_persists(self, tmp_path):
        """Test updates survive a new store instance."""
        path = tmp_path / "prefs" / "settings.json"
        JsonSettingsStore(path).update(time_offset=-120, manual_links={"vid": "1"})

        loaded = JsonSettingsStore(path).load()
        assert loaded.time_offset == -120
        assert loaded.manual_links == {"vid": "1"}
        assert not path.with_suffix(".json.tmp").exists()

    def test_corrupt_file_gives_defaults(self, tmp_path):
        """Test an unreadable file does not break loading."""
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")

        assert JsonSettingsStore(path).load() == ReplaySettings()

    def test_invalid_update_rejected(self, tmp_path):
        """Test invalid values raise and leave the file untouched."""
        store = JsonSettingsStore(tmp_path / "settings.json")
        store.update(time_offset=5)

        with pytest.raises(ValidationError):
            store.update(time_offset="soon")
        assert store.load().time_offset == 5


class TestMemorySettingsStore:
    """Test the in-memory store."""

    def test_update(self):
        store = MemorySettingsStore()
        store.update(auto_scroll=False)

        assert store.load().auto_scroll is False

    def test_load_returns_copy(self):
        """Test mutating a loaded copy does not change the store."""
        store = MemorySettingsStore()
        store.load().manual_links["vid"] = "1"

        assert store.load().manual_links == {}
