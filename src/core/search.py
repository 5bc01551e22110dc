"""Resource listing search (core domain).

Resource files are plain text listings, one entry per line, stored flat in a
single directory. Search returns every line that fuzzy-matches the query.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from core.events import EventBus
from core.matching import filter_matches

LOGGER = logging.getLogger(__name__)


def list_resource_files(path: str) -> List[str]:
    """Return regular files directly under ``path`` (not recursive)."""

    if not os.path.isdir(path):
        raise FileNotFoundError(f"Resource directory not found: {path}")

    with os.scandir(path) as entries:
        files = [entry.path for entry in entries if entry.is_file()]
    # scandir order is platform defined; sort so repeated searches agree.
    return sorted(files)


def search_resource_file(path: str, query: Optional[str]) -> List[str]:
    """Return matching lines (without line endings) from one resource file."""

    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        return filter_matches((line.rstrip("\r\n") for line in handle), query)


def search_resources(path: str, query: Optional[str], events: Optional[EventBus] = None) -> List[str]:
    """Return matching lines across all resource files in ``path``.

    A file that cannot be read is skipped; the failure is logged and, when an
    event bus is given, reported as a ``search error`` event.
    """

    results: List[str] = []
    for resource in list_resource_files(path):
        try:
            results.extend(search_resource_file(resource, query))
        except OSError as exc:
            LOGGER.warning("Skipping unreadable resource file %s: %s", resource, exc)
            if events is not None:
                events.push("search error", {"file": resource, "error": str(exc)})
    LOGGER.info("Search for %r matched %s lines", query, len(results))
    return results
