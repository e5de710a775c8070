"""Token-level LCS diff of two related lines.

Each line is split into tokens on whitespace and punctuation, keeping the
delimiters as tokens so that joining the tokens gives the line back.  The
two token lists are aligned with a classic longest-common-subsequence table
and the alignment is rendered for one side at a time: tokens only present
on the rendered side are marked changed, tokens only present on the other
side are dropped.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List

from .config import DEFAULT_TOKEN_MIN_LENGTH, DEFAULT_TOKEN_SIMILARITY_FLOOR
from .models import DiffSegment
from .similarity import similarity

TOKEN_SPLIT_PATTERN = re.compile(r"(\s+|[()\[\]{}<>;,.:=+\-*/%!&|^~?@#\"'\\])")


class Side(str, Enum):
    OLD = "old"
    NEW = "new"


def tokenize(text: str) -> List[str]:
    """Split *text* into word tokens and delimiter tokens.

    ``"".join(tokenize(text)) == text`` for any input.
    """
    return [tok for tok in TOKEN_SPLIT_PATTERN.split(text) if tok]


def _lcs_table(a: List[str], b: List[str]) -> List[List[int]]:
    n, m = len(a), len(b)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        row, prev = table[i], table[i - 1]
        tok = a[i - 1]
        for j in range(1, m + 1):
            if tok == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])
    return table


def _merge(segments: List[DiffSegment]) -> List[DiffSegment]:
    merged: List[DiffSegment] = []
    for seg in segments:
        if merged and merged[-1].changed == seg.changed:
            merged[-1] = DiffSegment(merged[-1].text + seg.text, seg.changed)
        else:
            merged.append(seg)
    return merged


def is_degenerate(
    old: str,
    new: str,
    min_length: int = DEFAULT_TOKEN_MIN_LENGTH,
    similarity_floor: float = DEFAULT_TOKEN_SIMILARITY_FLOOR,
) -> bool:
    """True when two lines are too short or too different for a token diff."""
    if len(old) < min_length or len(new) < min_length:
        return True
    return similarity(old, new) < similarity_floor


def diff_tokens(
    old: str,
    new: str,
    side: Side,
    min_length: int = DEFAULT_TOKEN_MIN_LENGTH,
    similarity_floor: float = DEFAULT_TOKEN_SIMILARITY_FLOOR,
) -> List[DiffSegment]:
    """Render the token alignment of *old* and *new* for one *side*.

    Args:
        old: Old line text (no line terminator).
        new: New line text (no line terminator).
        side: Which line the segments reconstruct.
        min_length: Shorter lines skip the token diff.
        similarity_floor: Less similar lines skip the token diff.

    Returns:
        Segments whose concatenated text equals the rendered side's line.
    """
    own = old if side is Side.OLD else new
    if is_degenerate(old, new, min_length, similarity_floor):
        return [DiffSegment(own, changed=False)] if own else []

    a, b = tokenize(old), tokenize(new)
    table = _lcs_table(a, b)

    # Walk back from (n, m); segments come out in reverse order.
    out: List[DiffSegment] = []
    i, j = len(a), len(b)
    while i > 0 or j > 0:
        if i > 0 and j > 0 and a[i - 1] == b[j - 1]:
            out.append(DiffSegment(a[i - 1], changed=False))
            i -= 1
            j -= 1
        elif i > 0 and (j == 0 or table[i - 1][j] >= table[i][j - 1]):
            if side is Side.OLD:
                out.append(DiffSegment(a[i - 1], changed=True))
            i -= 1
        else:
            if side is Side.NEW:
                out.append(DiffSegment(b[j - 1], changed=True))
            j -= 1

    out.reverse()
    return _merge(out)
