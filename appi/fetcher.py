"""
AppImage download.
"""

from __future__ import annotations

import http.client
import logging
import os
import shutil
from pathlib import Path

from . import net
from .errors import FilesystemError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755
CHUNK_SIZE = 64 * 1024


def is_installed(package_dir: Path) -> bool:
    """An existing package directory means the package is installed."""
    return package_dir.exists()


def download_bundle(url: str, destination: Path, timeout: float | None = net.DEFAULT_TIMEOUT) -> None:
    """
    Stream a remote file to destination and make it executable.

    The body is written to a ".part" file first, so a failed download never
    leaves a truncated AppImage under the final name.

    Raises:
        NotFoundError: If the server does not return the file
        NetworkError: If the transfer fails
        FilesystemError: If the destination cannot be written
    """
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create {destination.parent}: {e}") from e

    partial = destination.with_name(destination.name + ".part")

    try:
        response = net.http_open(url, timeout=timeout)
    except NotFoundError as e:
        raise NotFoundError("Failed to download file. Check if the package is available") from e
    except NetworkError as e:
        raise NetworkError(f"Failed to download file. Check if the package is available ({e.message})") from e

    try:
        with response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise NetworkError(f"Failed to download file (HTTP {status}). Check if the package is available")
            _stream_to(response, partial, url)
        os.replace(partial, destination)
        os.chmod(destination, EXECUTABLE_MODE)
    except OSError as e:
        raise FilesystemError(f"Cannot finalize {destination}: {e}") from e
    finally:
        partial.unlink(missing_ok=True)

    logger.debug(f"Downloaded {url} -> {destination}")


def fetch_bundle(url: str, destination: Path, timeout: float | None = net.DEFAULT_TIMEOUT) -> bool:
    """
    Download an AppImage unless its package is already installed.

    The package directory (destination's parent) is checked before any
    network access.

    Returns:
        True if downloaded, False if the package directory already existed
    """
    if is_installed(destination.parent):
        logger.info(f"{destination.parent.name} is already installed")
        return False

    download_bundle(url, destination, timeout=timeout)
    return True


def _stream_to(response, partial: Path, url: str) -> None:
    try:
        out = open(partial, "wb")
    except OSError as e:
        raise FilesystemError(f"Cannot write {partial}: {e}") from e

    with out:
        try:
            shutil.copyfileobj(response, out, CHUNK_SIZE)
        except (http.client.HTTPException, OSError) as e:
            raise NetworkError(f"Download of {url} interrupted: {e}") from e
