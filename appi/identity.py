"""
Package identity and its on-disk encoding.

Installed bundles carry their provenance in their path:

    <applications_dir>/<name>/<name>-<aur|publisher>-v<version>.appimage

encode_filename() and decode_filename() are the only places that know the
delimiter and segment order; everything else goes through them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .errors import ParseError
from .versioning import SemanticVersion, parse_version

DELIMITER = "-"
REPLACEMENT = "_"
BUNDLE_EXTENSION = ".appimage"
INDEX_TAG = "aur"


class SourceKind(enum.Enum):
    """Upstream a package was installed from."""
    COMMUNITY_INDEX = "aur"
    CODE_HOST = "github"

    @property
    def label(self) -> str:
        return "AUR" if self is SourceKind.COMMUNITY_INDEX else "GitHub"

    def other(self) -> SourceKind:
        if self is SourceKind.COMMUNITY_INDEX:
            return SourceKind.CODE_HOST
        return SourceKind.COMMUNITY_INDEX


def normalize_name(name: str) -> str:
    """Replace the delimiter so a name or publisher fits in one segment."""
    return name.strip().replace(DELIMITER, REPLACEMENT)


def denormalize_name(name: str) -> str:
    """
    Best-effort reversal of normalize_name().

    Lossy: an upstream name that really contains an underscore comes back
    with a hyphen.
    """
    return name.replace(REPLACEMENT, DELIMITER)


@dataclass(frozen=True)
class PackageRef:
    """
    Reference to an upstream package, without a version.

    Attributes:
        name: Upstream package or repository name
        source: Which upstream to query
        publisher: Repository owner (GitHub only)
    """
    name: str
    source: SourceKind
    publisher: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("Package name must not be empty")
        if self.source is SourceKind.CODE_HOST and not self.publisher:
            raise ValueError(f"GitHub package {self.name!r} needs a publisher")

    @property
    def display_name(self) -> str:
        if self.source is SourceKind.CODE_HOST:
            return f"{self.publisher}/{self.name}"
        return self.name

    @property
    def folder_name(self) -> str:
        """Name of the installation directory for this package."""
        return normalize_name(self.name)

    @staticmethod
    def from_repository(reference: str) -> PackageRef:
        """
        Build a GitHub reference from "owner/repo" or a repository URL.

        Raises:
            ValueError: If the reference has no owner segment
        """
        parts = [p for p in reference.strip().rstrip("/").split("/") if p]
        if len(parts) < 2:
            raise ValueError(f"Expected owner/repo, got: {reference!r}")
        return PackageRef(name=parts[-1], source=SourceKind.CODE_HOST, publisher=parts[-2])


@dataclass(frozen=True)
class PackageIdentity:
    """
    Durable identity of an installed bundle.

    Attributes:
        name: Package name as stored (normalized)
        source: Upstream the bundle came from
        publisher: GitHub owner as stored (normalized), empty for AUR
        version: Installed version
    """
    name: str
    source: SourceKind
    publisher: str
    version: SemanticVersion

    @staticmethod
    def for_release(ref: PackageRef, version: SemanticVersion) -> PackageIdentity:
        """Identity of a freshly resolved release, normalized for encoding."""
        publisher = normalize_name(ref.publisher) if ref.source is SourceKind.CODE_HOST else ""
        return PackageIdentity(
            name=normalize_name(ref.name),
            source=ref.source,
            publisher=publisher,
            version=version,
        )

    @property
    def ref(self) -> PackageRef:
        """Upstream reference with normalization reversed."""
        return PackageRef(
            name=denormalize_name(self.name),
            source=self.source,
            publisher=denormalize_name(self.publisher),
        )

    @property
    def tag(self) -> str:
        return INDEX_TAG if self.source is SourceKind.COMMUNITY_INDEX else self.publisher


def encode_filename(identity: PackageIdentity) -> str:
    """
    Encode an identity as a bundle filename.

    Raises:
        ValueError: If name or publisher still contain the delimiter
    """
    for label, value in (("name", identity.name), ("publisher", identity.publisher)):
        if DELIMITER in value:
            raise ValueError(f"{label} {value!r} contains {DELIMITER!r}; normalize it first")
    if not identity.name or not identity.tag:
        raise ValueError("Identity needs a name and a source tag")

    return f"{identity.name}{DELIMITER}{identity.tag}{DELIMITER}v{identity.version}{BUNDLE_EXTENSION}"


def is_bundle_filename(filename: str) -> bool:
    return filename.lower().endswith(BUNDLE_EXTENSION)


def decode_filename(filename: str) -> PackageIdentity:
    """
    Decode a bundle filename into an identity.

    Segment 0 is the name, segment 1 is "aur" (any case) or the GitHub
    publisher, and the remainder is the version with an optional "v".

    Raises:
        ParseError: If the filename is not an encoded bundle
    """
    if not is_bundle_filename(filename):
        raise ParseError(f"Not an AppImage filename: {filename!r}")

    stem = filename[: -len(BUNDLE_EXTENSION)]
    parts = stem.split(DELIMITER, 2)
    if len(parts) < 3 or not all(parts):
        raise ParseError(
            f"Corrupt bundle filename {filename!r}: expected <name>-<aur|publisher>-v<version>{BUNDLE_EXTENSION}",
            remediation="Delete and reinstall the package",
        )

    name, tag, version_text = parts
    version = parse_version(version_text)

    if tag.lower() == INDEX_TAG:
        return PackageIdentity(name=name, source=SourceKind.COMMUNITY_INDEX, publisher="", version=version)
    return PackageIdentity(name=name, source=SourceKind.CODE_HOST, publisher=tag, version=version)
