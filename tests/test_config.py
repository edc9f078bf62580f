"""
Tests for configuration parsing (appi/config.py).
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from appi.config import (
    Config,
    Paths,
    Preferences,
    _load_json,
    _load_yaml,
    load_config,
    load_config_file,
)
from appi.identity import SourceKind


# Fixture paths
FIXTURES_DIR = Path(__file__).parent / "fixtures"
CONFIG_VALID = str(FIXTURES_DIR / "config_valid.yml")
CONFIG_MINIMAL = str(FIXTURES_DIR / "config_minimal.yml")
CONFIG_INVALID_VERSION = str(FIXTURES_DIR / "config_invalid_version.yml")
CONFIG_USER = str(FIXTURES_DIR / "config_user.yml")


class TestPreferences:
    """Tests for Preferences dataclass."""

    def test_preferences_defaults(self):
        """Test Preferences with default values."""
        prefs = Preferences()
        assert prefs.default_source == "aur"
        assert prefs.source_kind is SourceKind.COMMUNITY_INDEX
        assert prefs.timeout_seconds == 30
        assert prefs.search_limit == 5
        assert prefs.probe_workers == 4
        assert prefs.github_token is None

    def test_preferences_invalid_source(self):
        """Test that an unknown upstream raises ValueError."""
        with pytest.raises(ValueError, match="Invalid default_source"):
            Preferences(default_source="flathub")

    @pytest.mark.parametrize("timeout", [0, 301])
    def test_preferences_invalid_timeout(self, timeout):
        with pytest.raises(ValueError, match="Invalid timeout_seconds"):
            Preferences(timeout_seconds=timeout)

    @pytest.mark.parametrize("limit", [0, 21])
    def test_preferences_invalid_search_limit(self, limit):
        with pytest.raises(ValueError, match="Invalid search_limit"):
            Preferences(search_limit=limit)

    @pytest.mark.parametrize("workers", [0, 17])
    def test_preferences_invalid_probe_workers(self, workers):
        with pytest.raises(ValueError, match="Invalid probe_workers"):
            Preferences(probe_workers=workers)

    def test_preferences_immutable(self):
        """Test that Preferences is immutable."""
        prefs = Preferences()
        with pytest.raises(AttributeError):
            prefs.timeout_seconds = 10


class TestConfig:
    """Tests for Config dataclass."""

    def test_config_defaults(self):
        """Test Config with default values."""
        config = Config()
        assert config.version == 1
        assert config.paths.applications_path == Path.home() / "Applications"
        assert config.paths.desktop_path == Path.home() / ".local" / "share" / "applications"
        assert config.source == ""

    def test_config_invalid_version(self):
        with pytest.raises(ValueError, match="Unsupported config version"):
            Config(version=2)

    def test_config_from_dict(self):
        data = {
            "paths": {"applications_dir": "/apps"},
            "preferences": {"default_source": "github", "search_limit": 3},
        }
        config = Config.from_dict(data, source="test.yml")
        assert config.paths.applications_path == Path("/apps")
        assert config.paths.desktop_dir == Paths().desktop_dir
        assert config.preferences.source_kind is SourceKind.CODE_HOST
        assert config.preferences.search_limit == 3
        assert config.source == "test.yml"

    def test_github_token_env_overrides(self, monkeypatch):
        """Test that GITHUB_TOKEN wins over the configured token."""
        config = Config(preferences=Preferences(github_token="configured"))
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        assert config.github_token == "configured"
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        assert config.github_token == "from-env"

    def test_merge_prefers_self(self):
        high = Config(preferences=Preferences(timeout_seconds=10), source="high")
        low = Config(
            paths=Paths(applications_dir="/low"),
            preferences=Preferences(timeout_seconds=99, github_token="low-token"),
            source="low",
        )
        merged = high.merge_with(low)
        assert merged.preferences.timeout_seconds == 10
        assert merged.preferences.github_token == "low-token"
        assert merged.paths.applications_dir == "/low"
        assert merged.source == "high"


class TestLoaders:
    """Tests for file loading."""

    def test_load_yaml(self):
        data = _load_yaml(CONFIG_VALID)
        assert data["preferences"]["default_source"] == "github"

    def test_load_yaml_invalid(self, tmp_path):
        bad = tmp_path / "bad.yml"
        bad.write_text("version: [1\n")
        assert _load_yaml(str(bad)) is None

    def test_load_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"version": 1, "preferences": {"search_limit": 7}}))
        assert _load_json(str(path))["preferences"]["search_limit"] == 7
        assert load_config_file(str(path)).preferences.search_limit == 7

    def test_load_config_file_valid(self):
        config = load_config_file(CONFIG_VALID)
        assert config.paths.applications_dir == "/opt/appimages"
        assert config.preferences.timeout_seconds == 60
        assert config.preferences.probe_workers == 8
        assert config.source == CONFIG_VALID

    def test_load_config_file_minimal(self):
        config = load_config_file(CONFIG_MINIMAL)
        assert config == Config(source=CONFIG_MINIMAL)

    def test_load_config_file_invalid_version(self):
        assert load_config_file(CONFIG_INVALID_VERSION) is None

    def test_load_config_file_missing(self):
        assert load_config_file("/nonexistent/config.yml") is None

    @pytest.mark.parametrize("body", ["paths: /opt/apps\n", "preferences: [1, 2]\n"])
    def test_load_config_file_scalar_section(self, tmp_path, body):
        """Test that a section that is not a mapping skips the file."""
        path = tmp_path / "config.yml"
        path.write_text(f"version: 1\n{body}")
        assert load_config_file(str(path)) is None


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults_when_nothing_found(self):
        with patch("appi.config.CONFIG_LOCATIONS", ["/nonexistent/a.yml"]):
            assert load_config() == Config()

    def test_custom_path_has_priority(self):
        with patch("appi.config.CONFIG_LOCATIONS", [CONFIG_USER]):
            config = load_config(CONFIG_VALID)
        assert config.preferences.timeout_seconds == 60
        assert config.preferences.github_token == "from-file"

    def test_custom_path_missing(self):
        with pytest.raises(ValueError, match="Could not load config"):
            load_config("/nonexistent/custom.yml")
