"""
appi - install and update AppImages from the AUR and GitHub releases.

Usage:
    appi                       # List installed AppImages
    appi search QUERY [-g]     # Search, pick a result and install it
    appi install NAME [-g]     # Install by AUR name or GitHub owner/repo
    appi update                # Update every installed AppImage
    appi delete [NAME]         # Remove an AppImage and its menu entry
"""

import argparse
import logging
import sys

from .config import Config, load_config
from .errors import AppiError
from .identity import PackageRef, SourceKind
from .index import find_entry, iter_entries
from .installer import delete_package, install_package
from .logging_config import setup_logging
from .prompts import Prompter, TerminalPrompter
from .render import render_installed, render_update_result, render_update_summary
from .search import search_and_install
from .sources import VersionSource, build_source
from .upgrade import update_all

logger = logging.getLogger(__name__)


def build_sources(config: Config) -> dict[SourceKind, VersionSource]:
    """One source per upstream, sharing the configured timeout."""
    timeout = config.preferences.timeout_seconds
    return {kind: build_source(kind, timeout=timeout, token=config.github_token) for kind in SourceKind}


def _source_kind(args: argparse.Namespace, config: Config) -> SourceKind:
    if getattr(args, "github", False):
        return SourceKind.CODE_HOST
    return config.preferences.source_kind


def _report_install(result) -> int:
    if result is None:
        print("Nothing installed", file=sys.stderr)
    elif result.already_installed:
        print(f"{result.package_name} is already installed", file=sys.stderr)
    else:
        print(f"✓ {result.package_name} {result.version} installed", file=sys.stderr)
    return 0


def cmd_list(args: argparse.Namespace, config: Config, prompter: Prompter) -> int:
    """Print installed AppImages."""
    render_installed(iter_entries(config.paths.applications_path))
    return 0


def cmd_search(args: argparse.Namespace, config: Config, prompter: Prompter) -> int:
    """Search an upstream and install the chosen result."""
    if not args.query:
        print("Missing arguments", file=sys.stderr)
        return 1

    sources = build_sources(config)
    result = search_and_install(args.query, _source_kind(args, config), sources, config, prompter)
    return _report_install(result)


def cmd_install(args: argparse.Namespace, config: Config, prompter: Prompter) -> int:
    """Install a package by name without searching."""
    if not args.name:
        print("Missing arguments", file=sys.stderr)
        return 1

    kind = _source_kind(args, config)
    try:
        if kind is SourceKind.CODE_HOST:
            ref = PackageRef.from_repository(args.name)
        else:
            ref = PackageRef(name=args.name.strip(), source=kind)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    source = build_sources(config)[kind]
    result = install_package(ref, source, config, prompter)
    return _report_install(result)


def cmd_update(args: argparse.Namespace, config: Config, prompter: Prompter) -> int:
    """Update every installed AppImage."""
    sources = build_sources(config)
    bulk = update_all(config, sources, prompter, on_result=render_update_result)
    if not bulk.results:
        print("No AppImages installed", file=sys.stderr)
        return 0
    render_update_summary(bulk)
    return 1 if bulk.failures else 0


def cmd_delete(args: argparse.Namespace, config: Config, prompter: Prompter) -> int:
    """Remove an AppImage directory and its menu entry."""
    root = config.paths.applications_path

    if args.name:
        entry = find_entry(root, args.name)
        if entry is None:
            print(f"✗ {args.name} is not installed", file=sys.stderr)
            return 1
    else:
        entries = list(iter_entries(root))
        if not entries:
            print("No AppImages installed", file=sys.stderr)
            return 0
        choice = prompter.choose_one("Select a package to delete", [e.directory.name for e in entries])
        if choice is None:
            return 0
        entry = entries[choice]

    name = entry.directory.name
    if not prompter.confirm(f"Delete {name}?", default=True):
        return 0

    delete_package(entry.directory, config.paths.desktop_path)
    print(f"✓ {name} deleted", file=sys.stderr)
    return 0


COMMANDS = {
    "list": cmd_list,
    "search": cmd_search,
    "install": cmd_install,
    "update": cmd_update,
    "delete": cmd_delete,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appi",
        description="Install and update AppImages from the AUR and GitHub releases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors",
    )
    parser.add_argument(
        "--log-file",
        help="Also write a debug log to this file",
    )
    parser.add_argument(
        "--config",
        help="Configuration file to load first",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("list", help="List installed AppImages")

    # Positionals are optional so a missing one prints our own message
    search = subparsers.add_parser("search", help="Search and install an AppImage")
    search.add_argument("query", nargs="?", help="Search terms")
    search.add_argument("--github", "-g", action="store_true", help="Search GitHub instead of the AUR")

    install = subparsers.add_parser("install", help="Install an AppImage by name")
    install.add_argument("name", nargs="?", help="AUR package name or GitHub owner/repo")
    install.add_argument("--github", "-g", action="store_true", help="Install from GitHub releases")

    subparsers.add_parser("update", help="Update installed AppImages")

    delete = subparsers.add_parser("delete", help="Delete an installed AppImage")
    delete.add_argument("name", nargs="?", help="Installed package name")

    return parser


def main(argv: list[str] | None = None, prompter: Prompter | None = None) -> int:
    """Main entry point for appi."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    command = COMMANDS[args.command or "list"]
    try:
        return command(args, config, prompter or TerminalPrompter())
    except AppiError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        if e.remediation:
            print(f"  {e.remediation}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
