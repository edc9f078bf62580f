"""
Installed bundle index.

The filesystem is the only record of what is installed: every package has
a directory under the applications root holding exactly one encoded
AppImage. Scanning re-derives each bundle's identity from that filename.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .errors import AppiError, FilesystemError, ParseError
from .identity import PackageIdentity, decode_filename, is_bundle_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledBundle:
    """
    An AppImage found in the applications root.

    Attributes:
        identity: Identity decoded from the filename
        directory: Package installation directory
        artifact_file: The AppImage itself
    """
    identity: PackageIdentity
    directory: Path
    artifact_file: Path

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self):
        return self.identity.version

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.identity.name,
            "source": self.identity.source.value,
            "publisher": self.identity.publisher,
            "version": str(self.identity.version),
            "directory": str(self.directory),
            "artifact_file": str(self.artifact_file),
        }


@dataclass(frozen=True)
class IndexEntry:
    """One package directory and either its bundle or why it could not be read."""
    directory: Path
    bundle: InstalledBundle | None = None
    error: AppiError | None = None


def _package_dirs(root: Path) -> list[Path]:
    if not root.exists():
        return []
    if not root.is_dir():
        raise FilesystemError(f"Applications root is not a directory: {root}")
    try:
        return sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name)
    except OSError as e:
        raise FilesystemError(f"Cannot read {root}: {e}") from e


def read_bundle(directory: Path) -> InstalledBundle:
    """
    Decode the bundle stored in one package directory.

    Raises:
        ParseError: If the directory holds no AppImage, several, or a
            corrupt filename
        FilesystemError: If the directory cannot be read
    """
    try:
        files = sorted(p for p in directory.iterdir() if p.is_file() and is_bundle_filename(p.name))
    except OSError as e:
        raise FilesystemError(f"Cannot read {directory}: {e}") from e

    if not files:
        raise ParseError(f"No AppImage found in {directory}", remediation="Delete and reinstall the package")
    if len(files) > 1:
        names = ", ".join(p.name for p in files)
        raise ParseError(f"Several AppImages found in {directory}: {names}")

    artifact = files[0]
    identity = decode_filename(artifact.name)
    return InstalledBundle(identity=identity, directory=directory, artifact_file=artifact)


def iter_entries(root: Path) -> Iterator[IndexEntry]:
    """Yield every package directory in name order, keeping corrupt ones."""
    for directory in _package_dirs(root):
        try:
            yield IndexEntry(directory=directory, bundle=read_bundle(directory))
        except (ParseError, FilesystemError) as e:
            logger.warning(f"Corrupt installation in {directory}: {e.message}")
            yield IndexEntry(directory=directory, error=e)


def scan_installed(root: Path) -> list[InstalledBundle]:
    """
    Scan the applications root.

    Returns:
        Installed bundles ordered by name

    Raises:
        ParseError: On the first corrupt package directory
    """
    bundles = []
    for entry in iter_entries(root):
        if entry.error is not None:
            raise entry.error
        bundles.append(entry.bundle)
    logger.debug(f"Found {len(bundles)} installed bundle(s) in {root}")
    return bundles


def find_entry(root: Path, name: str) -> IndexEntry | None:
    """
    Look up a package directory by name.

    Matching is case-insensitive and accepts the upstream spelling with
    hyphens. Corrupt entries are returned too so they can be deleted.
    """
    wanted = name.strip().replace("-", "_").lower()
    for entry in iter_entries(root):
        if entry.directory.name.lower() == wanted:
            return entry
    return None
