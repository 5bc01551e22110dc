"""Fuzzy text matching (core domain).

A query matches a target when every space-separated token of the query is a
substring of the target, both compared lower-cased and trimmed.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


def normalise_text(text: str) -> str:
    """Normalise a string for comparison."""

    return text.lower().strip()


def space_split(text: str) -> List[str]:
    return text.split(" ")


def fuzzy_match(target: str, query: Optional[str]) -> bool:
    """Return True if all words of ``query`` appear in ``target``.

    An empty (or missing) query matches everything.
    """

    normalised_target = normalise_text(target)
    tokens = space_split(normalise_text(query or ""))
    return all(token in normalised_target for token in tokens)


def filter_matches(lines: Iterable[str], query: Optional[str]) -> List[str]:
    return [line for line in lines if fuzzy_match(line, query)]
