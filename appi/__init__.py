"""
appi - AppImage installer and updater.

Core Modules:
- Identity: Package names, upstream kinds, encoded AppImage filenames
- Sources: AUR and GitHub release resolution, search, rate limiting
- Installation: Download, extraction and desktop integration
- Update Management: Installed bundle scan, staleness check, replacement
"""

__version__ = "1.0.0"

# Version info for backward compatibility
VERSION = __version__

# Errors
from .errors import (
    AppiError,
    NetworkError,
    NotFoundError,
    NoResultsError,
    NoCompatibleArtifactError,
    QuotaExceededError,
    ParseError,
    FilesystemError,
    IntegrationError,
)

# Identity
from .versioning import SemanticVersion, parse_version, parse_index_version, parse_release_tag, compare_versions
from .identity import SourceKind, PackageRef, PackageIdentity, encode_filename, decode_filename

# Sources
from .sources import (
    AssetCandidate,
    RemoteRelease,
    SearchResult,
    VersionSource,
    CommunityIndexSource,
    CodeHostSource,
    build_source,
)

# Installation
from .index import InstalledBundle, IndexEntry, scan_installed, iter_entries, find_entry
from .fetcher import download_bundle, fetch_bundle
from .integrator import extract_bundle, integrate_bundle, rewrite_desktop_entry
from .installer import InstallResult, install_package, delete_package
from .search import find_installable, search_and_install

# Update Management
from .upgrade import UpdateStatus, UpdateResult, BulkUpdateResult, check_update, update_bundle, update_all

# Foundation
from .config import Config, Paths, Preferences, load_config, load_config_file
from .prompts import Prompter, TerminalPrompter
from .logging_config import setup_logging, get_logger

__all__ = [
    # Version
    "__version__",
    "VERSION",
    # Errors
    "AppiError",
    "NetworkError",
    "NotFoundError",
    "NoResultsError",
    "NoCompatibleArtifactError",
    "QuotaExceededError",
    "ParseError",
    "FilesystemError",
    "IntegrationError",
    # Identity
    "SemanticVersion",
    "parse_version",
    "parse_index_version",
    "parse_release_tag",
    "compare_versions",
    "SourceKind",
    "PackageRef",
    "PackageIdentity",
    "encode_filename",
    "decode_filename",
    # Sources
    "AssetCandidate",
    "RemoteRelease",
    "SearchResult",
    "VersionSource",
    "CommunityIndexSource",
    "CodeHostSource",
    "build_source",
    # Installation
    "InstalledBundle",
    "IndexEntry",
    "scan_installed",
    "iter_entries",
    "find_entry",
    "download_bundle",
    "fetch_bundle",
    "extract_bundle",
    "integrate_bundle",
    "rewrite_desktop_entry",
    "InstallResult",
    "install_package",
    "delete_package",
    "find_installable",
    "search_and_install",
    # Update Management
    "UpdateStatus",
    "UpdateResult",
    "BulkUpdateResult",
    "check_update",
    "update_bundle",
    "update_all",
    # Foundation
    "Config",
    "Paths",
    "Preferences",
    "load_config",
    "load_config_file",
    "Prompter",
    "TerminalPrompter",
    "setup_logging",
    "get_logger",
]
