"""
Semantic version parsing and comparison.

Versions follow the major.minor.patch(-prerelease) grammar and are ordered
by semver precedence through semantic_version: prerelease identifiers
compare one by one (numeric ones numerically and below alphanumeric ones),
and a prerelease sorts below the release it precedes.
"""

from __future__ import annotations

import re

import semantic_version

from .errors import ParseError


class SemanticVersion(semantic_version.Version):
    """A semver version as found in bundle filenames and upstream metadata."""

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)


_IDENTIFIER = r"(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)"
_SEMVER_RE = re.compile(
    rf"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-({_IDENTIFIER}(?:\.{_IDENTIFIER})*))?$"
)


def parse_version(text: str) -> SemanticVersion:
    """
    Parse a semantic version string.

    A single leading "v" is accepted ("v1.2.3"). Build metadata ("+build")
    is not part of the grammar.

    Args:
        text: Version string (e.g., "1.2.3", "1.0.0-beta.2")

    Returns:
        Parsed version

    Raises:
        ParseError: If the string is not a semantic version
    """
    candidate = text.strip()
    if candidate[:1] in ("v", "V"):
        candidate = candidate[1:]

    if not _SEMVER_RE.match(candidate):
        raise ParseError(f"Invalid version: {text!r}")

    try:
        return SemanticVersion(candidate)
    except ValueError as e:
        raise ParseError(f"Invalid version: {text!r}") from e


def strip_distribution_suffix(version: str) -> str:
    """Drop everything after the first hyphen ("2.3.1-1" -> "2.3.1")."""
    return version.split("-", 1)[0]


def parse_index_version(version: str) -> SemanticVersion:
    """
    Parse a version reported by the AUR.

    AUR versions carry a package release suffix after a hyphen, which is
    removed before parsing.
    """
    if not version:
        raise ParseError("Version not found")
    return parse_version(strip_distribution_suffix(version))


def normalize_release_tag(tag: str) -> str:
    """Keep only digits and dots ("release-v2.3.1" -> "2.3.1")."""
    return "".join(c for c in tag if c.isdigit() or c == ".")


def parse_release_tag(tag: str) -> SemanticVersion:
    """
    Parse a GitHub release tag into a version.

    Raises:
        ParseError: If the tag is empty or holds no semantic version
    """
    if not tag:
        raise ParseError("Version not found in release")
    return parse_version(normalize_release_tag(tag))


def compare_versions(v1: SemanticVersion, v2: SemanticVersion) -> int:
    """
    Compare two versions.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    else:
        return 0


def is_stale(installed: SemanticVersion, remote: SemanticVersion) -> bool:
    """True when the installed version is strictly older than the remote one."""
    return compare_versions(installed, remote) < 0
