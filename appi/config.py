"""
Configuration file parsing and management.

Supports YAML configuration files with JSON for files ending in .json.
Merges configurations from multiple sources (custom → user → system → defaults).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .common import vlog
from .identity import SourceKind


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    os.path.expanduser("~/.config/appi/config.yml"),   # User global
    os.path.expanduser("~/.config/appi/config.yaml"),
    "/etc/appi/config.yml",                            # System global
    "/etc/appi/config.yaml",
]

DEFAULT_APPLICATIONS_DIR = "~/Applications"
DEFAULT_DESKTOP_DIR = "~/.local/share/applications"
VALID_SOURCES = {kind.value for kind in SourceKind}


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Paths:
    """
    Filesystem locations.

    Attributes:
        applications_dir: Root holding one directory per installed package
        desktop_dir: The user's applications menu directory
    """
    applications_dir: str = DEFAULT_APPLICATIONS_DIR
    desktop_dir: str = DEFAULT_DESKTOP_DIR

    @property
    def applications_path(self) -> Path:
        return Path(os.path.expanduser(self.applications_dir))

    @property
    def desktop_path(self) -> Path:
        return Path(os.path.expanduser(self.desktop_dir))

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Paths:
        """Create Paths from dictionary."""
        return Paths(
            applications_dir=data.get("applications_dir", DEFAULT_APPLICATIONS_DIR),
            desktop_dir=data.get("desktop_dir", DEFAULT_DESKTOP_DIR),
        )


@dataclass(frozen=True)
class Preferences:
    """
    User preferences.

    Attributes:
        default_source: Upstream used when none is given ('aur' or 'github')
        timeout_seconds: Timeout for network operations
        search_limit: How many ranked search results are probed
        probe_workers: Parallel workers for search result probing
        github_token: Token for authenticated GitHub requests
    """
    default_source: str = "aur"
    timeout_seconds: int = 30
    search_limit: int = 5
    probe_workers: int = 4
    github_token: str | None = None

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.default_source not in VALID_SOURCES:
            raise ValueError(
                f"Invalid default_source: {self.default_source}. "
                f"Must be one of: {', '.join(sorted(VALID_SOURCES))}"
            )

        if self.timeout_seconds < 1 or self.timeout_seconds > 300:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be between 1 and 300"
            )

        if self.search_limit < 1 or self.search_limit > 20:
            raise ValueError(
                f"Invalid search_limit: {self.search_limit}. "
                "Must be between 1 and 20"
            )

        if self.probe_workers < 1 or self.probe_workers > 16:
            raise ValueError(
                f"Invalid probe_workers: {self.probe_workers}. "
                "Must be between 1 and 16"
            )

    @property
    def source_kind(self) -> SourceKind:
        return SourceKind(self.default_source)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            default_source=data.get("default_source", "aur"),
            timeout_seconds=data.get("timeout_seconds", 30),
            search_limit=data.get("search_limit", 5),
            probe_workers=data.get("probe_workers", 4),
            github_token=data.get("github_token"),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for appi.

    Attributes:
        version: Config schema version
        paths: Filesystem locations
        preferences: Global preferences
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    paths: Paths = field(default_factory=Paths)
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @property
    def github_token(self) -> str | None:
        """Token from GITHUB_TOKEN, falling back to the configured one."""
        return os.environ.get("GITHUB_TOKEN") or self.preferences.github_token

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            paths=Paths.from_dict(_section(data, "paths")),
            preferences=Preferences.from_dict(_section(data, "preferences")),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        defaults_paths = Paths()
        defaults_prefs = Preferences()

        def pick(mine, theirs, default):
            return mine if mine != default else theirs

        merged_paths = Paths(
            applications_dir=pick(self.paths.applications_dir, other.paths.applications_dir, defaults_paths.applications_dir),
            desktop_dir=pick(self.paths.desktop_dir, other.paths.desktop_dir, defaults_paths.desktop_dir),
        )
        merged_preferences = Preferences(
            default_source=pick(self.preferences.default_source, other.preferences.default_source, defaults_prefs.default_source),
            timeout_seconds=pick(self.preferences.timeout_seconds, other.preferences.timeout_seconds, defaults_prefs.timeout_seconds),
            search_limit=pick(self.preferences.search_limit, other.preferences.search_limit, defaults_prefs.search_limit),
            probe_workers=pick(self.preferences.probe_workers, other.preferences.probe_workers, defaults_prefs.probe_workers),
            github_token=self.preferences.github_token or other.preferences.github_token,
        )

        return Config(
            version=self.version,
            paths=merged_paths,
            preferences=merged_preferences,
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """Parse a YAML file; None if unreadable or malformed, {} if empty."""
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return None
    return data if isinstance(data, dict) else {}


def _load_json(file_path: str) -> dict[str, Any] | None:
    """Parse a JSON file; None if unreadable or malformed."""
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else {}


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Read one configuration file.

    Files ending in .json are parsed as JSON, everything else as YAML.
    Missing, malformed or invalid files yield None; the reason is only
    reported through vlog().
    """
    if not os.path.isfile(file_path):
        return None

    reader = _load_json if file_path.endswith(".json") else _load_yaml
    data = reader(file_path)
    if data is None:
        vlog(f"Skipping unreadable config: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
    except (ValueError, TypeError) as e:
        vlog(f"Skipping invalid config {file_path}: {e}", verbose)
        return None

    vlog(f"Loaded config: {file_path}", verbose)
    return config


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge every configuration file that exists.

    Precedence, highest first: custom_path, the user files under
    ~/.config/appi, the system files under /etc/appi, built-in defaults.

    Raises:
        ValueError: If custom_path is given but cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        custom = load_config_file(os.path.expanduser(custom_path), verbose)
        if custom is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(custom)

    configs.extend(c for c in (load_config_file(p, verbose) for p in CONFIG_LOCATIONS) if c is not None)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    merged = configs[0]
    for lower in configs[1:]:
        merged = merged.merge_with(lower)
    vlog(f"Using {merged.source} ({len(configs)} config file(s) merged)", verbose)
    return merged
