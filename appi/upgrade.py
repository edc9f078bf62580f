"""
Update management for installed AppImages.

Every installed bundle ends in one of three states: up to date, replaced
by the latest release, or failed. Bundles are processed one at a time in
name order and a failure never stops the scan.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Mapping

from .config import Config
from .errors import AppiError, NotFoundError
from .identity import PackageIdentity, PackageRef, SourceKind
from .index import InstalledBundle, iter_entries
from .installer import choose_artifact, install_package, remove_tree
from .prompts import Prompter
from .sources import RemoteRelease, VersionSource
from .versioning import SemanticVersion, is_stale

logger = logging.getLogger(__name__)


class UpdateStatus(enum.Enum):
    UP_TO_DATE = "up-to-date"
    REPLACED = "replaced"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdateResult:
    """
    Result of checking and possibly replacing one bundle.

    Attributes:
        package_name: Name of the package directory
        status: Terminal state
        installed_version: Version before the update (None if unreadable)
        remote_version: Latest upstream version (None if not resolved)
        error_message: Human-readable error message if failed
        duration_seconds: Time spent on this bundle
    """
    package_name: str
    status: UpdateStatus
    installed_version: str | None
    remote_version: str | None = None
    error_message: str | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "package_name": self.package_name,
            "status": self.status.value,
            "installed_version": self.installed_version,
            "remote_version": self.remote_version,
            "error_message": self.error_message,
            "duration_seconds": self.duration_seconds,
        }

    def version_jump_description(self) -> str:
        """Human-readable version jump description."""
        if self.remote_version and self.remote_version != self.installed_version:
            return f"{self.installed_version} → {self.remote_version}"
        return f"{self.installed_version}"


@dataclass(frozen=True)
class BulkUpdateResult:
    """
    Result of an update scan.

    Attributes:
        results: Per-bundle results in scan order
        duration_seconds: Total execution time
    """
    results: tuple[UpdateResult, ...]
    duration_seconds: float

    def _with(self, status: UpdateStatus) -> tuple[UpdateResult, ...]:
        return tuple(r for r in self.results if r.status is status)

    @property
    def replaced(self) -> tuple[UpdateResult, ...]:
        return self._with(UpdateStatus.REPLACED)

    @property
    def up_to_date(self) -> tuple[UpdateResult, ...]:
        return self._with(UpdateStatus.UP_TO_DATE)

    @property
    def failures(self) -> tuple[UpdateResult, ...]:
        return self._with(UpdateStatus.FAILED)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "results": [r.to_dict() for r in self.results],
            "duration_seconds": self.duration_seconds,
        }

    def summary(self) -> str:
        """Human-readable summary."""
        return f"""
Update Summary:
  ✅ Updated: {len(self.replaced)}
  ✔  Up to date: {len(self.up_to_date)}
  ❌ Failed: {len(self.failures)}
  ⏱️  Duration: {self.duration_seconds:.1f}s
"""


def _literal_ref(identity: PackageIdentity) -> PackageRef | None:
    """The stored names used verbatim, if that differs from the decoded ref."""
    literal = PackageRef(name=identity.name, source=identity.source, publisher=identity.publisher)
    return literal if literal != identity.ref else None


def resolve_remote_version(identity: PackageIdentity, source: VersionSource) -> tuple[PackageRef, SemanticVersion]:
    """
    Latest upstream version of an installed package.

    Underscores in stored names usually stand for hyphens; when that
    spelling is not found upstream the stored spelling is tried once.

    Returns:
        (ref that resolved, latest version)
    """
    ref = identity.ref
    try:
        return ref, source.resolve_latest_version(ref)
    except NotFoundError:
        literal = _literal_ref(identity)
        if literal is None:
            raise
        logger.debug(f"{ref.display_name} not found, retrying as {literal.display_name}")
        return literal, source.resolve_latest_version(literal)


def check_update(bundle: InstalledBundle, source: VersionSource) -> tuple[bool, PackageRef, SemanticVersion]:
    """
    Compare an installed bundle with its upstream.

    Returns:
        (stale, ref that resolved, latest version)
    """
    ref, remote = resolve_remote_version(bundle.identity, source)
    return is_stale(bundle.version, remote), ref, remote


def _prepare_release(ref: PackageRef, source: VersionSource, prompter: Prompter) -> RemoteRelease | None:
    # Resolved and chosen before anything is deleted
    release = source.latest_release(ref)
    url = choose_artifact(release, ref, prompter)
    if url is None:
        return None
    return replace(release, artifact_url=url)


def update_bundle(
    bundle: InstalledBundle,
    sources: Mapping[SourceKind, VersionSource],
    config: Config,
    prompter: Prompter,
) -> UpdateResult:
    """
    Bring one bundle up to date.

    A stale bundle's directory is removed before the new release is
    downloaded; if the download or integration then fails the package
    stays uninstalled.
    """
    start_time = time.time()
    name = bundle.directory.name
    installed = str(bundle.version)
    source = sources[bundle.identity.source]

    def result(status: UpdateStatus, remote: SemanticVersion | None = None, error: str | None = None) -> UpdateResult:
        return UpdateResult(
            package_name=name,
            status=status,
            installed_version=installed,
            remote_version=str(remote) if remote is not None else None,
            error_message=error,
            duration_seconds=time.time() - start_time,
        )

    logger.debug(f"{name} - checking for updates...")
    try:
        stale, ref, remote = check_update(bundle, source)
    except AppiError as e:
        return result(UpdateStatus.FAILED, error=e.message)

    if not stale:
        return result(UpdateStatus.UP_TO_DATE, remote)

    logger.info(f"{name} {installed} is outdated ({remote} available)")
    try:
        release = _prepare_release(ref, source, prompter)
    except AppiError as e:
        return result(UpdateStatus.FAILED, remote, e.message)
    if release is None:
        return result(UpdateStatus.FAILED, remote, "No AppImage selected; kept the installed version")

    try:
        remove_tree(bundle.directory)
    except AppiError as e:
        return result(UpdateStatus.FAILED, release.version, e.message)

    try:
        installed_result = install_package(ref, source, config, prompter, release=release)
    except AppiError as e:
        return result(UpdateStatus.FAILED, release.version, f"{e.message} ({name} was removed and not reinstalled)")

    if installed_result is None or installed_result.version is None:
        return result(UpdateStatus.FAILED, release.version, f"{name} was removed and not reinstalled")
    return result(UpdateStatus.REPLACED, release.version)


def update_all(
    config: Config,
    sources: Mapping[SourceKind, VersionSource],
    prompter: Prompter,
    on_result: Callable[[UpdateResult], None] | None = None,
) -> BulkUpdateResult:
    """
    Update every installed bundle, sequentially in name order.

    Corrupt package directories are reported as failures.

    Args:
        config: Paths and timeouts
        sources: Source per upstream kind
        prompter: Used when a release offers several AppImages
        on_result: Called with each result as soon as it is known
    """
    start_time = time.time()
    results: list[UpdateResult] = []

    for entry in iter_entries(config.paths.applications_path):
        if entry.error is not None:
            update = UpdateResult(
                package_name=entry.directory.name,
                status=UpdateStatus.FAILED,
                installed_version=None,
                error_message=entry.error.message,
            )
        else:
            update = update_bundle(entry.bundle, sources, config, prompter)

        if update.status is UpdateStatus.FAILED:
            logger.warning(f"{update.package_name}: {update.error_message}")
        results.append(update)
        if on_result is not None:
            on_result(update)

    return BulkUpdateResult(results=tuple(results), duration_seconds=time.time() - start_time)
