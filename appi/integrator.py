"""
AppImage extraction and desktop menu integration.

An AppImage extracts itself with --appimage-extract into squashfs-root/
next to it. The extracted tree provides the launcher (AppRun), a .desktop
entry and an icon; the desktop entry is copied to the user's applications
menu with its Exec= and Icon= lines pointing into the extracted tree.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .errors import FilesystemError, IntegrationError

logger = logging.getLogger(__name__)

EXTRACT_FLAG = "--appimage-extract"
EXTRACTED_DIR = "squashfs-root"
LAUNCHER_NAME = "AppRun"
DESKTOP_EXTENSIONS = (".desktop",)
ICON_EXTENSIONS = ("svg", "png", "jpg", "jpeg", "bmp", "ico", "webp")


@dataclass(frozen=True)
class Integration:
    """Files an installed AppImage is wired to."""
    launcher: Path
    icon: Path
    desktop_source: Path
    desktop_entry: Path


def extract_bundle(artifact: Path, timeout: int | None = None) -> Path:
    """
    Run the AppImage's self-extraction next to it.

    The extractor writes relative to its working directory, so it runs with
    cwd set to the artifact's own directory.

    Returns:
        Path to the extracted tree

    Raises:
        IntegrationError: If extraction fails or produces no tree
    """
    artifact = artifact.resolve()
    workdir = artifact.parent
    logger.debug(f"Extracting {artifact.name} in {workdir}")

    try:
        result = subprocess.run(
            [str(artifact), EXTRACT_FLAG],
            cwd=workdir,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise IntegrationError(f"Extraction of {artifact.name} timed out after {timeout}s") from e
    except OSError as e:
        raise IntegrationError(f"Cannot run {artifact.name}: {e}") from e

    if result.returncode != 0:
        detail = (result.stderr or "").strip()[:200]
        raise IntegrationError(
            f"Extraction of {artifact.name} failed with exit code {result.returncode}"
            + (f": {detail}" if detail else "")
        )

    extracted = workdir / EXTRACTED_DIR
    if not extracted.is_dir():
        raise IntegrationError(f"Extraction of {artifact.name} produced no {EXTRACTED_DIR}/ directory")
    return extracted


def _files(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file())


def find_desktop_file(extracted: Path) -> Path:
    """First .desktop file at the top of the extracted tree."""
    for path in _files(extracted):
        if path.suffix.lower() in DESKTOP_EXTENSIONS:
            return path
    raise IntegrationError("No desktop file found")


def find_icon(extracted: Path) -> Path:
    """First file at the top of the extracted tree with an icon extension."""
    for path in _files(extracted):
        if path.suffix.lower().lstrip(".") in ICON_EXTENSIONS:
            return path
    raise IntegrationError("No icon found")


def find_launcher(extracted: Path) -> Path:
    launcher = extracted / LAUNCHER_NAME
    if not launcher.exists():
        raise IntegrationError(f"No {LAUNCHER_NAME} entry point found")
    return launcher


def rewrite_desktop_entry(content: str, icon: Path, launcher: Path) -> str:
    """
    Point Icon= and Exec= at the extracted files.

    Lines are matched by prefix; all other lines are kept byte for byte,
    including their line endings.
    """
    lines = content.split("\n")
    for i, line in enumerate(lines):
        eol = "\r" if line.endswith("\r") else ""
        if line.startswith("Icon="):
            lines[i] = f"Icon={icon}{eol}"
        elif line.startswith("Exec="):
            lines[i] = f"Exec={launcher} %U{eol}"
    return "\n".join(lines)


def _write_atomic(path: Path, content: str) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def desktop_entry_path(desktop_dir: Path, name: str) -> Path:
    return desktop_dir / f"{name.lower()}.desktop"


def integrate_bundle(artifact: Path, name: str, desktop_dir: Path) -> Integration:
    """
    Install a menu entry for an extracted AppImage.

    Args:
        artifact: The AppImage, already extracted next to itself
        name: Normalized package name
        desktop_dir: The user's applications menu directory

    Raises:
        IntegrationError: If the launcher, desktop file or icon is missing
        FilesystemError: If the menu entry cannot be written
    """
    extracted = artifact.resolve().parent / EXTRACTED_DIR
    if not extracted.is_dir():
        raise IntegrationError(f"{artifact.name} has not been extracted")

    launcher = find_launcher(extracted)
    desktop_source = find_desktop_file(extracted)
    icon = find_icon(extracted)
    target = desktop_entry_path(desktop_dir, name)

    try:
        content = desktop_source.read_text(encoding="utf-8", errors="replace")
        desktop_dir.mkdir(parents=True, exist_ok=True)
        _write_atomic(target, rewrite_desktop_entry(content, icon, launcher))
    except OSError as e:
        raise FilesystemError(f"Cannot write desktop entry {target}: {e}") from e

    logger.debug(f"Installed desktop entry {target}")
    return Integration(launcher=launcher, icon=icon, desktop_source=desktop_source, desktop_entry=target)
