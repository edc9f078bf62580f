"""
Shared fixtures for appi tests.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Sequence
from unittest.mock import MagicMock, patch

import pytest

from appi.config import Config, Paths, Preferences
from appi.errors import NoResultsError, NotFoundError
from appi.identity import PackageRef
from appi.integrator import EXTRACTED_DIR, LAUNCHER_NAME
from appi.sources import AssetCandidate, SearchResult, VersionSource
from appi.versioning import parse_version


class ScriptedPrompter:
    """Prompter answering from fixed lists and recording every question."""

    def __init__(self, choices: Sequence[int | None] = (), confirms: Sequence[bool] = ()):
        self.choices = list(choices)
        self.confirms = list(confirms)
        self.asked: list[tuple[str, list[str]]] = []
        self.confirmed: list[str] = []

    def choose_one(self, prompt, labels):
        self.asked.append((prompt, list(labels)))
        return self.choices.pop(0) if self.choices else 0

    def confirm(self, prompt, default=True):
        self.confirmed.append(prompt)
        return self.confirms.pop(0) if self.confirms else default


def fake_extract(returncode: int = 0, with_icon: bool = True, with_desktop: bool = True):
    """side_effect for subprocess.run that mimics --appimage-extract."""

    def run(cmd, cwd=None, **kwargs):
        if returncode == 0:
            tree = Path(cwd) / EXTRACTED_DIR
            tree.mkdir(exist_ok=True)
            (tree / LAUNCHER_NAME).write_text("#!/bin/sh\n")
            if with_desktop:
                (tree / "app.desktop").write_text(
                    "[Desktop Entry]\nName=App\nExec=app\nIcon=app\nType=Application\n"
                )
            if with_icon:
                (tree / "app.png").write_bytes(b"\x89PNG")
        return MagicMock(returncode=returncode, stdout="", stderr="" if returncode == 0 else "boom")

    return run


@pytest.fixture
def prompter():
    return ScriptedPrompter()


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary home."""
    return Config(
        paths=Paths(
            applications_dir=str(tmp_path / "Applications"),
            desktop_dir=str(tmp_path / "share" / "applications"),
        ),
        preferences=Preferences(timeout_seconds=5),
    )


@pytest.fixture
def apps_root(config):
    root = config.paths.applications_path
    root.mkdir(parents=True)
    return root


def make_bundle(root: Path, folder: str, filename: str) -> Path:
    """Create <root>/<folder>/<filename> as an installed AppImage."""
    directory = root / folder
    directory.mkdir(parents=True, exist_ok=True)
    artifact = directory / filename
    artifact.write_bytes(b"\x7fELF")
    return artifact


@pytest.fixture
def scripted():
    """Factory for prompters with canned answers."""
    return ScriptedPrompter


@pytest.fixture
def bundle_factory():
    return make_bundle


@pytest.fixture
def extractor():
    return fake_extract


@pytest.fixture(autouse=True)
def reset_appi_logger():
    """Undo setup_logging() so caplog sees records from every test."""
    logger = logging.getLogger("appi")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class FakeSource(VersionSource):
    """
    In-memory upstream.

    versions maps package names to version strings (or exceptions to raise),
    artifacts maps names to download URLs, bundles lists names that ship an
    AppImage for has_bundle().
    """

    def __init__(self, kind, versions=None, artifacts=None, results=None, bundles=()):
        super().__init__(timeout=1)
        self.kind = kind
        self.versions = dict(versions or {})
        self.artifacts = dict(artifacts or {})
        self.results = results
        self.bundles = set(bundles)
        self.resolved: list[str] = []
        self.probed: list[str] = []

    def resolve_latest_version(self, ref):
        self.resolved.append(ref.name)
        value = self.versions.get(ref.name)
        if value is None:
            raise NotFoundError(f"{ref.name} was not found")
        if isinstance(value, Exception):
            raise value
        return parse_version(value)

    def resolve_artifact(self, ref):
        urls = self.artifacts.get(ref.name, (f"https://dl.example.org/{ref.name}.AppImage",))
        return tuple(AssetCandidate(label=u.rsplit("/", 1)[-1], url=u) for u in urls)

    def search(self, query):
        if not self.results:
            raise NoResultsError(f"No results found for {query!r}")
        return list(self.results)

    def has_bundle(self, ref):
        self.probed.append(ref.name)
        return ref.name in self.bundles


def search_result(kind, name, publisher=""):
    ref = PackageRef(name=name, source=kind, publisher=publisher)
    return SearchResult(ref=ref, label=ref.display_name)


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def result_factory():
    return search_result


def download_response(body=b"\x7fELF"):
    resp = MagicMock()
    resp.status = 200
    resp.read.side_effect = io.BytesIO(body).read
    resp.__enter__.return_value = resp
    return resp


@pytest.fixture
def network(extractor):
    """Patch downloads and extraction; yields (http_open, subprocess.run) mocks."""
    with patch("appi.fetcher.net.http_open") as mock_open, \
            patch("appi.integrator.subprocess.run") as mock_run:
        mock_open.side_effect = lambda url, timeout=None: download_response()
        mock_run.side_effect = extractor()
        yield mock_open, mock_run
