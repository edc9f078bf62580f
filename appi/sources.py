"""
Upstream version sources.

Two structurally different upstreams sit behind one interface:

- CommunityIndexSource: the AUR RPC API for versions and search, and the
  AUR package page (HTML) for the AppImage download link.
- CodeHostSource: the GitHub REST API for releases, assets and search,
  guarded by a rate-limit check before every request.
"""

from __future__ import annotations

import abc
import logging
import math
import platform
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable

from bs4 import BeautifulSoup

from . import net
from .errors import (
    NoCompatibleArtifactError,
    NoResultsError,
    NotFoundError,
    ParseError,
    QuotaExceededError,
)
from .identity import BUNDLE_EXTENSION, PackageRef, SourceKind
from .versioning import SemanticVersion, parse_index_version, parse_release_tag

logger = logging.getLogger(__name__)

# Substrings that tag a download as built for a given CPU family
ARCH_MARKERS: dict[str, tuple[str, ...]] = {
    "x86_64": ("x86_64", "amd64", "x64"),
    "aarch64": ("aarch64", "arm64"),
    "armv7l": ("armv7", "armhf"),
    "i686": ("i386", "i686"),
}
_MACHINE_ALIASES = {"amd64": "x86_64", "arm64": "aarch64"}


@dataclass(frozen=True)
class AssetCandidate:
    """A downloadable AppImage offered by an upstream."""
    label: str
    url: str


@dataclass(frozen=True)
class RemoteRelease:
    """
    Latest published release of a package.

    Attributes:
        version: Release version
        artifact_url: Download URL, or "" when several assets need a choice
        asset_candidates: Every compatible asset the release offers
    """
    version: SemanticVersion
    artifact_url: str
    asset_candidates: tuple[AssetCandidate, ...] = ()

    @property
    def needs_choice(self) -> bool:
        return not self.artifact_url and len(self.asset_candidates) > 1


@dataclass(frozen=True)
class SearchResult:
    """One search hit, ranked by the source."""
    ref: PackageRef
    label: str
    popularity: float = 0.0


def foreign_arch_markers(machine: str | None = None) -> tuple[str, ...]:
    """Markers of every CPU family other than the one we run on."""
    machine = (machine or platform.machine()).lower()
    machine = _MACHINE_ALIASES.get(machine, machine)
    own = machine if machine in ARCH_MARKERS else "x86_64"
    return tuple(m for arch, markers in ARCH_MARKERS.items() if arch != own for m in markers)


def select_asset_candidates(assets: list[dict[str, Any]]) -> tuple[AssetCandidate, ...]:
    """Keep GitHub release assets whose name ends with the AppImage extension."""
    candidates = []
    for asset in assets or []:
        name = asset.get("name") or ""
        url = asset.get("browser_download_url") or ""
        if name.lower().endswith(BUNDLE_EXTENSION) and url:
            candidates.append(AssetCandidate(label=name, url=url))
    return tuple(candidates)


class VersionSource(abc.ABC):
    """Common operations every upstream supports."""

    kind: SourceKind

    def __init__(self, timeout: float | None = net.DEFAULT_TIMEOUT):
        self.timeout = timeout

    @abc.abstractmethod
    def resolve_latest_version(self, ref: PackageRef) -> SemanticVersion:
        """Latest published version of a package."""

    @abc.abstractmethod
    def resolve_artifact(self, ref: PackageRef) -> tuple[AssetCandidate, ...]:
        """Compatible downloads for the latest release (never empty)."""

    @abc.abstractmethod
    def search(self, query: str) -> list[SearchResult]:
        """Ranked search results for a free-text query."""

    @abc.abstractmethod
    def has_bundle(self, ref: PackageRef) -> bool:
        """Whether the package currently ships an AppImage."""

    def latest_release(self, ref: PackageRef) -> RemoteRelease:
        version = self.resolve_latest_version(ref)
        candidates = self.resolve_artifact(ref)
        return _release(version, candidates)


def _release(version: SemanticVersion, candidates: tuple[AssetCandidate, ...]) -> RemoteRelease:
    artifact_url = candidates[0].url if len(candidates) == 1 else ""
    return RemoteRelease(version=version, artifact_url=artifact_url, asset_candidates=candidates)


class CommunityIndexSource(VersionSource):
    """The AUR: JSON RPC for metadata, HTML package pages for downloads."""

    kind = SourceKind.COMMUNITY_INDEX

    INFO_URL = "https://aur.archlinux.org/rpc/v5/info/{name}"
    SEARCH_URL = "https://aur.archlinux.org/rpc/v5/search/{query}"
    PAGE_URL = "https://aur.archlinux.org/packages/{name}/"

    def __init__(self, timeout: float | None = net.DEFAULT_TIMEOUT, machine: str | None = None):
        super().__init__(timeout)
        self.foreign_markers = foreign_arch_markers(machine)

    def _quote(self, value: str) -> str:
        return urllib.parse.quote(value, safe="")

    def resolve_latest_version(self, ref: PackageRef) -> SemanticVersion:
        data = net.http_get_json(self.INFO_URL.format(name=self._quote(ref.name)), timeout=self.timeout)
        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            raise NotFoundError(f"{ref.name} was not found on the AUR")

        match = next((r for r in results if r.get("Name") == ref.name), results[0])
        version = match.get("Version")
        if not isinstance(version, str) or not version:
            raise ParseError(f"Version not found for {ref.name}")
        logger.debug(f"AUR {ref.name}: {version}")
        return parse_index_version(version)

    def bundle_links(self, html: str) -> list[AssetCandidate]:
        """
        Hyperlinks on a package page that point at an AppImage.

        A link qualifies when its text ends with the AppImage extension and
        does not name a foreign CPU architecture.
        """
        soup = BeautifulSoup(html, "html.parser")
        links = []
        for anchor in soup.find_all("a"):
            text = anchor.get_text().strip()
            href = anchor.get("href")
            lowered = text.lower()
            if not href or not lowered.endswith(BUNDLE_EXTENSION):
                continue
            if any(marker in lowered for marker in self.foreign_markers):
                logger.debug(f"Skipping foreign architecture link: {text}")
                continue
            links.append(AssetCandidate(label=text, url=href))
        return links

    def _page_links(self, ref: PackageRef) -> list[AssetCandidate]:
        html = net.http_get_text(self.PAGE_URL.format(name=self._quote(ref.name)), timeout=self.timeout)
        return self.bundle_links(html)

    def resolve_artifact(self, ref: PackageRef) -> tuple[AssetCandidate, ...]:
        links = self._page_links(ref)
        if not links:
            raise NoCompatibleArtifactError(f"No compatible AppImage found for {ref.name}")
        # Later links override earlier ones
        return (links[-1],)

    def has_bundle(self, ref: PackageRef) -> bool:
        try:
            return bool(self._page_links(ref))
        except NotFoundError:
            return False

    def search(self, query: str) -> list[SearchResult]:
        data = net.http_get_json(self.SEARCH_URL.format(query=self._quote(query.strip())), timeout=self.timeout)
        if not isinstance(data, dict):
            raise ParseError("Unexpected AUR search response")
        if data.get("type") == "error":
            raise NoResultsError(f"AUR search failed: {data.get('error', 'unknown error')}")

        results = []
        for item in data.get("results") or []:
            name = item.get("Name")
            version = item.get("Version")
            if not name or not version:
                continue
            results.append(SearchResult(
                ref=PackageRef(name=name, source=self.kind),
                label=f"{name}: {version.split('-', 1)[0]}",
                popularity=float(item.get("Popularity") or 0.0),
            ))
        if not results:
            raise NoResultsError(f"No results found for {query!r} on the AUR")

        # sorted() is stable, so equal popularity keeps the API order
        return sorted(results, key=lambda r: r.popularity, reverse=True)


class CodeHostSource(VersionSource):
    """GitHub releases, with the rate limit checked before each request."""

    kind = SourceKind.CODE_HOST

    API_URL = "https://api.github.com"

    def __init__(
        self,
        timeout: float | None = net.DEFAULT_TIMEOUT,
        token: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(timeout)
        self.token = token
        self.clock = clock

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def get_rate_limit(self) -> dict[str, int]:
        """Current core rate limit as {"remaining": ..., "reset": ...}."""
        data = net.http_get_json(f"{self.API_URL}/rate_limit", timeout=self.timeout, headers=self.headers)
        if not isinstance(data, dict):
            raise ParseError("Unexpected rate limit response")
        rate = data.get("rate") or data.get("resources", {}).get("core") or {}
        if "remaining" not in rate or "reset" not in rate:
            raise ParseError("Rate limit response is missing 'remaining' or 'reset'")
        return {"remaining": int(rate["remaining"]), "reset": int(rate["reset"])}

    def check_rate_limit(self) -> None:
        """
        Fail fast when no requests are left.

        Raises:
            QuotaExceededError: If remaining is 0
        """
        rate = self.get_rate_limit()
        if rate["remaining"] == 0:
            seconds = rate["reset"] - self.clock()
            minutes = max(0, math.ceil(seconds / 60))
            logger.debug(f"GitHub quota exhausted, resets in {seconds:.0f}s")
            raise QuotaExceededError(minutes)

    def _api_get(self, path: str) -> Any:
        self.check_rate_limit()
        return net.http_get_json(f"{self.API_URL}{path}", timeout=self.timeout, headers=self.headers)

    def _latest_release_data(self, ref: PackageRef) -> dict[str, Any]:
        path = f"/repos/{ref.publisher}/{ref.name}/releases/latest"
        try:
            data = self._api_get(path)
        except NotFoundError as e:
            raise NotFoundError(f"No release found for {ref.display_name}") from e
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected release response for {ref.display_name}")
        return data

    def _version_from(self, ref: PackageRef, data: dict[str, Any]) -> SemanticVersion:
        tag = data.get("tag_name") or ""
        if not tag:
            raise ParseError(f"Version not found for {ref.display_name}")
        logger.debug(f"GitHub {ref.display_name}: {tag}")
        return parse_release_tag(tag)

    def _candidates_from(self, ref: PackageRef, data: dict[str, Any]) -> tuple[AssetCandidate, ...]:
        candidates = select_asset_candidates(data.get("assets") or [])
        if not candidates:
            raise NoCompatibleArtifactError(f"No compatible AppImage found for {ref.display_name}")
        return candidates

    def resolve_latest_version(self, ref: PackageRef) -> SemanticVersion:
        return self._version_from(ref, self._latest_release_data(ref))

    def resolve_artifact(self, ref: PackageRef) -> tuple[AssetCandidate, ...]:
        return self._candidates_from(ref, self._latest_release_data(ref))

    def latest_release(self, ref: PackageRef) -> RemoteRelease:
        data = self._latest_release_data(ref)
        return _release(self._version_from(ref, data), self._candidates_from(ref, data))

    def has_bundle(self, ref: PackageRef) -> bool:
        try:
            data = self._latest_release_data(ref)
        except NotFoundError:
            return False
        return bool(select_asset_candidates(data.get("assets") or []))

    def search(self, query: str) -> list[SearchResult]:
        query = query.strip()
        data = self._api_get(f"/search/repositories?q={urllib.parse.quote(query, safe='')}")
        if not isinstance(data, dict):
            raise ParseError("Unexpected GitHub search response")
        items = data.get("items") or []
        if not data.get("total_count") or not items:
            raise NoResultsError(f"No results found for {query!r} on GitHub")

        results = []
        for item in items:
            full_name = item.get("full_name") or ""
            if full_name.count("/") != 1:
                continue
            owner, repo = full_name.split("/")
            description = item.get("description") or ""
            label = f"{full_name}: {description}" if description else full_name
            results.append(SearchResult(
                ref=PackageRef(name=repo, source=self.kind, publisher=owner),
                label=label,
            ))
        if not results:
            raise NoResultsError(f"No results found for {query!r} on GitHub")
        return results


def build_source(kind: SourceKind, timeout: float | None = net.DEFAULT_TIMEOUT, token: str | None = None) -> VersionSource:
    """Create the source for an upstream kind."""
    if kind is SourceKind.CODE_HOST:
        return CodeHostSource(timeout=timeout, token=token)
    return CommunityIndexSource(timeout=timeout)
