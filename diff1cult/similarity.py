"""Normalized edit-distance similarity between two lines of text."""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def edit_distance(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Return ``1 - distance / max(len(a), len(b))``, always within [0, 1].

    Two empty strings count as identical; one empty string is unrelated
    to anything.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0

    distance = edit_distance(a, b)
    max_len = max(len(a), len(b))
    return 1 - (distance / max_len)
