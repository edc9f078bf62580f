"""
Install and delete orchestration.

An install resolves the latest release, downloads the AppImage into its
package directory under an encoded filename, extracts it and installs a
menu entry. A failed install removes the directory it created, so the
package never looks installed when it is not.
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .errors import AppiError, FilesystemError
from .fetcher import fetch_bundle, is_installed
from .identity import PackageIdentity, PackageRef, SourceKind, encode_filename
from .integrator import desktop_entry_path, extract_bundle, integrate_bundle
from .prompts import Prompter
from .sources import RemoteRelease, VersionSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallResult:
    """
    Outcome of installing one package.

    Attributes:
        package_name: Normalized package name
        source: Upstream the package came from
        version: Installed version (None when already installed)
        artifact_path: Path to the downloaded AppImage
        desktop_entry: Path to the installed menu entry
        already_installed: True when the install was skipped
        duration_seconds: Total installation time
    """
    package_name: str
    source: SourceKind
    version: str | None
    artifact_path: str | None = None
    desktop_entry: str | None = None
    already_installed: bool = False
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "package_name": self.package_name,
            "source": self.source.value,
            "version": self.version,
            "artifact_path": self.artifact_path,
            "desktop_entry": self.desktop_entry,
            "already_installed": self.already_installed,
            "duration_seconds": self.duration_seconds,
        }


def choose_artifact(release: RemoteRelease, ref: PackageRef, prompter: Prompter) -> str | None:
    """
    Pick the download URL of a release.

    Returns:
        URL, or None if the user declined to choose between several assets
    """
    if release.artifact_url:
        return release.artifact_url

    labels = [candidate.label for candidate in release.asset_candidates]
    choice = prompter.choose_one(f"{ref.display_name} offers several AppImages, select one", labels)
    if choice is None:
        return None
    return release.asset_candidates[choice].url


def remove_tree(path: Path) -> None:
    """Delete a directory tree; a missing tree is not an error."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError(f"Cannot remove {path}: {e}") from e


def install_package(
    ref: PackageRef,
    source: VersionSource,
    config: Config,
    prompter: Prompter,
    release: RemoteRelease | None = None,
) -> InstallResult | None:
    """
    Install the latest AppImage of a package.

    Args:
        ref: Package to install
        source: Upstream matching ref.source
        config: Paths and timeouts
        prompter: Used when a release offers several AppImages
        release: Already resolved release (resolved here if None)

    Returns:
        InstallResult, or None if the user declined a choice

    Raises:
        AppiError: If resolution, download or integration fails
    """
    start_time = time.time()
    package_dir = config.paths.applications_path / ref.folder_name

    # Checked before any network access
    if is_installed(package_dir):
        logger.info(f"{ref.folder_name} is already installed")
        return InstallResult(package_name=ref.folder_name, source=ref.source, version=None, already_installed=True)

    if release is None:
        release = source.latest_release(ref)
    url = choose_artifact(release, ref, prompter)
    if url is None:
        logger.info("No AppImage selected")
        return None

    identity = PackageIdentity.for_release(ref, release.version)
    artifact = package_dir / encode_filename(identity)
    timeout = config.preferences.timeout_seconds

    logger.info(f"Downloading {identity.name} {identity.version}...")
    try:
        if not fetch_bundle(url, artifact, timeout=timeout):
            return InstallResult(package_name=identity.name, source=ref.source, version=None, already_installed=True)
        logger.info(f"Installing {identity.name}...")
        extract_bundle(artifact)
        integration = integrate_bundle(artifact, identity.name, config.paths.desktop_path)
    except AppiError:
        logger.debug(f"Install of {identity.name} failed, removing {package_dir}")
        remove_tree(package_dir)
        raise

    duration = time.time() - start_time
    logger.info(f"Successfully installed {identity.name} version {identity.version}")
    return InstallResult(
        package_name=identity.name,
        source=ref.source,
        version=str(identity.version),
        artifact_path=str(artifact),
        desktop_entry=str(integration.desktop_entry),
        duration_seconds=duration,
    )


def delete_package(package_dir: Path, desktop_dir: Path) -> bool:
    """
    Remove a package directory and its menu entry.

    Returns:
        True if a menu entry was removed too

    Raises:
        FilesystemError: If the directory or entry cannot be removed
    """
    remove_tree(package_dir)
    logger.debug(f"Removed {package_dir}")

    entry = desktop_entry_path(desktop_dir, package_dir.name)
    try:
        entry.unlink()
    except FileNotFoundError:
        logger.warning(f"No matching desktop entry found for {package_dir.name}")
        return False
    except OSError as e:
        raise FilesystemError(f"Cannot remove {entry}: {e}") from e
    return True
