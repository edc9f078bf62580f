"""
Output rendering and formatting.

Tables are aligned by display width so emoji status icons and colored
cells line up in a terminal.
"""

import os
import re
import sys
from typing import Any, Iterable, Sequence

from wcwidth import wcswidth

from .index import IndexEntry
from .upgrade import BulkUpdateResult, UpdateResult, UpdateStatus


# Environment options
USE_EMOJI = os.environ.get("APPI_EMOJI", "1") == "1"
USE_COLOR = os.environ.get("APPI_COLOR", "1") == "1" and sys.stdout.isatty()

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
RED = "\033[31m"
RESET = "\033[0m"

# CSI sequences (colors) take no room on screen
CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def display_width(text: str) -> int:
    """Terminal columns taken by text, ignoring color codes."""
    visible = CSI_RE.sub("", text)
    width = wcswidth(visible)
    if width < 0:
        width = len(visible)  # non-printable characters
    return width


def status_icon(status: UpdateStatus) -> str:
    if not USE_EMOJI:
        return {UpdateStatus.UP_TO_DATE: "✓", UpdateStatus.REPLACED: "↑"}.get(status, "x")
    return {UpdateStatus.UP_TO_DATE: "✅", UpdateStatus.REPLACED: "⬆"}.get(status, "❌")


def format_table(rows: Sequence[Sequence[str]], header: Sequence[str] | None = None, pad: int = 2) -> list[str]:
    """Align rows into columns.

    Args:
        rows: Table cells, possibly colored
        header: Optional header row, underlined with a rule
        pad: Spaces between columns

    Returns:
        Formatted lines without trailing whitespace
    """
    all_rows = [list(header)] + [list(r) for r in rows] if header else [list(r) for r in rows]
    if not all_rows:
        return []

    ncol = max(len(r) for r in all_rows)
    widths = [0] * ncol
    for row in all_rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], display_width(cell))

    def line(row: Sequence[str]) -> str:
        cells = [cell + " " * (widths[i] - display_width(cell)) for i, cell in enumerate(row)]
        return (" " * pad).join(cells).rstrip()

    lines = [line(r) for r in all_rows]
    if header:
        rule = (" " * pad).join("-" * w for w in widths)
        lines.insert(1, rule)
    return lines


def render_installed(entries: Iterable[IndexEntry], out: Any = None) -> int:
    """Print installed packages as a table.

    Returns:
        Number of rows printed
    """
    out = out or sys.stdout
    rows = []
    for entry in entries:
        if entry.bundle is None:
            rows.append([entry.directory.name, colorize("?", RED), "", colorize(str(entry.error), RED)])
            continue
        identity = entry.bundle.identity
        source = identity.publisher if identity.publisher else identity.source.label
        rows.append([entry.directory.name, str(identity.version), source, entry.bundle.artifact_file.name])

    if not rows:
        print("No AppImages installed", file=out)
        return 0

    for text in format_table(rows, header=("package", "version", "source", "file")):
        print(text, file=out)
    return len(rows)


def render_update_result(result: UpdateResult, out: Any = None) -> None:
    """Print one update line as soon as the bundle is done."""
    out = out or sys.stdout
    icon = status_icon(result.status)
    if result.status is UpdateStatus.REPLACED:
        detail = colorize(result.version_jump_description(), BOLD_GREEN)
    elif result.status is UpdateStatus.UP_TO_DATE:
        detail = colorize(f"{result.installed_version} is up to date", GREEN)
    else:
        detail = colorize(result.error_message or "update failed", RED)
    print(f"{icon} {result.package_name}: {detail}", file=out)


def render_update_summary(bulk: BulkUpdateResult, out: Any = None) -> None:
    out = out or sys.stderr
    print(bulk.summary().rstrip(), file=out)
