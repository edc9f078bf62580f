"""
Interactive search and install.

Search results are only offered when the package really ships an
AppImage, which costs one request per result. Those probes run on a small
thread pool; results keep their ranked order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping

from .config import Config
from .errors import NoResultsError
from .identity import SourceKind
from .installer import InstallResult, install_package
from .prompts import Prompter
from .sources import SearchResult, VersionSource

logger = logging.getLogger(__name__)


def find_installable(
    source: VersionSource,
    query: str,
    limit: int = 5,
    max_workers: int = 4,
) -> list[SearchResult]:
    """
    Top search results that ship an AppImage.

    Args:
        source: Upstream to search
        query: Free-text query
        limit: How many ranked results to probe
        max_workers: Parallel probes

    Returns:
        Installable results in their ranked order (possibly empty)

    Raises:
        NoResultsError: If the search itself found nothing
    """
    results = source.search(query)[:limit]
    logger.debug(f"Probing {len(results)} result(s) on {source.kind.label} for AppImages")

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(results)))) as executor:
        # map() yields in submission order
        shipped = list(executor.map(lambda r: source.has_bundle(r.ref), results))

    return [result for result, ok in zip(results, shipped) if ok]


def search_and_install(
    query: str,
    kind: SourceKind,
    sources: Mapping[SourceKind, VersionSource],
    config: Config,
    prompter: Prompter,
    allow_fallback: bool = True,
) -> InstallResult | None:
    """
    Search one upstream, let the user pick a result and install it.

    When nothing installable is found the user is offered the other
    upstream once.

    Returns:
        InstallResult, or None if the user declined a prompt

    Raises:
        NoResultsError: If no upstream left to try has an installable result
        AppiError: If the search or the install fails
    """
    query = query.strip()
    source = sources[kind]
    logger.info(f"Searching {query} on {kind.label}...")

    try:
        candidates = find_installable(
            source,
            query,
            limit=config.preferences.search_limit,
            max_workers=config.preferences.probe_workers,
        )
    except NoResultsError:
        candidates = []

    if not candidates:
        other = kind.other()
        if not allow_fallback or other not in sources:
            raise NoResultsError(f"No AppImages found for {query!r} on {kind.label}")
        logger.warning(f"No AppImages found for {query!r} on {kind.label}")
        if not prompter.confirm(f"Do you want to try on {other.label}?", default=True):
            return None
        return search_and_install(query, other, sources, config, prompter, allow_fallback=False)

    choice = prompter.choose_one("Select a package", [c.label for c in candidates])
    if choice is None:
        return None

    return install_package(candidates[choice].ref, source, config, prompter)
