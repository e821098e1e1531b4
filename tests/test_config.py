"""Tests for configuration management."""

from pathlib import Path
from unittest.mock import patch

import pytest
from lectern.config import Config


def write_config(tmp_path: Path, text: str) -> Path:
    config_file = tmp_path / "lectern.toml"
    config_file.write_text(text)
    return config_file


class TestConfigLoad:
    """Tests for Config.load()."""

    def test__explicit_path__loads_config(self, tmp_path: Path) -> None:
        """Load every section from an explicit file."""
        config_file = write_config(
            tmp_path,
            """
[site]
title = "Notebook"
url = "https://example.com/notes/"
posts_dir = "content"
output_dir = "public"
feed_limit = 5

[server]
host = "0.0.0.0"
port = 9000

[cache]
enabled = false

[diagrams]
kroki_url = "https://kroki.example.com"
timeout = 5

[live_reload]
enabled = false
watch_patterns = ["*.md", "*.markdown"]

[preferences]
path = "prefs.json"
""",
        )

        config = Config.load(config_file)

        assert config.site.title == "Notebook"
        assert config.site.url == "https://example.com/notes"
        assert config.site.posts_dir == tmp_path / "content"
        assert config.index_path == tmp_path / "public" / "content.json"
        assert config.feed_path == tmp_path / "public" / "feed.xml"
        assert config.site.feed_limit == 5
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 9000
        assert config.cache.enabled is False
        assert config.diagrams.kroki_url == "https://kroki.example.com"
        assert config.diagrams.timeout == 5.0
        assert config.live_reload.watch_patterns == ["*.md", "*.markdown"]
        assert config.preferences.path == tmp_path / "prefs.json"
        assert config.config_path == config_file

    def test__minimal_config__paths_relative_to_file(self, tmp_path: Path) -> None:
        """Missing sections resolve defaults next to the config file."""
        config = Config.load(write_config(tmp_path, "[server]\nport = 9000"))

        assert config.site.posts_dir == tmp_path / "posts"
        assert config.site.output_dir == tmp_path
        assert config.cache.dir == tmp_path / ".cache"
        assert config.diagrams.kroki_url is None
        assert config.preferences.path is None

    def test__missing_explicit_path__raises_error(self, tmp_path: Path) -> None:
        """Raise FileNotFoundError for an explicit path that doesn't exist."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            Config.load(tmp_path / "absent.toml")

    def test__invalid_toml__raises_error(self, tmp_path: Path) -> None:
        """Malformed TOML is a configuration error."""
        with pytest.raises(ValueError, match="Invalid TOML"):
            Config.load(write_config(tmp_path, "[site\n"))

    def test__no_path_no_discovery__returns_defaults(self) -> None:
        """Return defaults when no config file is found."""
        with patch.object(Config, "_discover_config", return_value=None):
            config = Config.load()

        assert config.site.title == "Research"
        assert config.server.port == 8080
        assert config.cache.enabled is True
        assert config.config_path is None


class TestConfigDiscovery:
    """Tests for config file discovery."""

    def test__config_in_parent_dir__found(self, tmp_path: Path) -> None:
        """Find config in a parent directory."""
        config_file = write_config(tmp_path, "")
        subdir = tmp_path / "posts" / "drafts"
        subdir.mkdir(parents=True)

        with patch("pathlib.Path.cwd", return_value=subdir):
            discovered = Config._discover_config()

        assert discovered == config_file


class TestConfigValidation:
    """Tests for invalid values."""

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("[site]\nfeed_limit = 0", "site.feed_limit must be a positive integer"),
            ("[site]\ntitle = 3", "site.title must be a string"),
            ("[server]\nport = \"80\"", "server.port must be an integer"),
            ("[cache]\nenabled = \"yes\"", "cache.enabled must be a boolean"),
            ("[diagrams]\ntimeout = -1", "diagrams.timeout must be a positive number"),
            ("[live_reload]\nwatch_patterns = [1]", "live_reload.watch_patterns items must be strings"),
            ("site = 1", "site section must be a dictionary"),
        ],
    )
    def test__invalid_value__raises_error(self, tmp_path: Path, text: str, message: str) -> None:
        """Type and range errors name the offending key."""
        with pytest.raises(ValueError, match=message):
            Config.load(write_config(tmp_path, text))


class TestWithOverrides:
    """Tests for Config.with_overrides()."""

    def test__overrides__applied_without_mutation(self, test_config: Config, tmp_path: Path) -> None:
        """Only given values change, on a copy."""
        updated = test_config.with_overrides(port=9999, kroki_url="https://k", cache_enabled=False)

        assert updated.server.port == 9999
        assert updated.server.host == test_config.server.host
        assert updated.diagrams.kroki_url == "https://k"
        assert updated.cache.enabled is False
        assert test_config.server.port == 8080
        assert test_config.cache.enabled is True

    def test__posts_dir_override__keeps_output_dir(self, test_config: Config, tmp_path: Path) -> None:
        """Directory overrides are independent."""
        updated = test_config.with_overrides(posts_dir=tmp_path / "other")

        assert updated.site.posts_dir == tmp_path / "other"
        assert updated.site.output_dir == test_config.site.output_dir
