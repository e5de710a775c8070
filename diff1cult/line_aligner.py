"""Line aligner: line diff, similar-line pairing, and two-pane rendering."""

from __future__ import annotations

import difflib
from typing import Dict, List, Optional

from .config import (
    DEFAULT_PAIRING_THRESHOLD,
    DEFAULT_TOKEN_MIN_LENGTH,
    DEFAULT_TOKEN_SIMILARITY_FLOOR,
)
from .models import (
    AlignedDiff,
    DiffLine,
    DiffSegment,
    LineKind,
    ModifiedPair,
    PaneRow,
    RowKind,
)
from .similarity import similarity
from .token_diff import Side, diff_tokens


def diff_lines(old_text: str, new_text: str) -> List[DiffLine]:
    """Classify every line of both texts as unchanged, deleted, or inserted.

    Line endings are kept: ``DiffLine.text`` holds the new version of a
    line (the old one for deletions) and ``DiffLine.old_text`` the old
    version, so joining the non-deleted ``text`` values gives *new_text*
    and joining the non-inserted ``old_text`` values gives *old_text*.
    Line numbers are 1-based per version.
    """
    old_lines = old_text.splitlines(keepends=True)
    new_lines = new_text.splitlines(keepends=True)
    # Compare without terminators so a missing final newline is not a change.
    old_keys = [line.rstrip("\r\n") for line in old_lines]
    new_keys = [line.rstrip("\r\n") for line in new_lines]

    matcher = difflib.SequenceMatcher(None, old_keys, new_keys, autojunk=False)
    lines: List[DiffLine] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for k in range(i2 - i1):
                lines.append(DiffLine(new_lines[j1 + k], LineKind.UNCHANGED, old_text=old_lines[i1 + k]))
            continue
        if tag in ("replace", "delete"):
            for line in old_lines[i1:i2]:
                lines.append(DiffLine(line, LineKind.DELETED, old_text=line))
        if tag in ("replace", "insert"):
            for line in new_lines[j1:j2]:
                lines.append(DiffLine(line, LineKind.INSERTED))

    _number_lines(lines)
    return lines


def _number_lines(lines: List[DiffLine]) -> None:
    old_no = new_no = 0
    for line in lines:
        if line.kind is not LineKind.INSERTED:
            old_no += 1
            line.old_number = old_no
        if line.kind is not LineKind.DELETED:
            new_no += 1
            line.new_number = new_no


def pair_similar_lines(
    lines: List[DiffLine],
    threshold: float = DEFAULT_PAIRING_THRESHOLD,
) -> List[ModifiedPair]:
    """Greedily pair deleted lines with their most similar inserted line.

    Deleted lines are visited in order; each takes the unclaimed inserted
    line with the highest similarity (first seen on ties) if that
    similarity is strictly above *threshold*.  A committed pair is never
    revisited.
    """
    deleted = [i for i, line in enumerate(lines) if line.kind is LineKind.DELETED]
    inserted = [i for i, line in enumerate(lines) if line.kind is LineKind.INSERTED]

    pairs: List[ModifiedPair] = []
    claimed = set()
    for d in deleted:
        best_index: Optional[int] = None
        best_score = -1.0
        d_text = lines[d].content
        for ins in inserted:
            if ins in claimed:
                continue
            score = similarity(d_text, lines[ins].content)
            if score > best_score:
                best_index, best_score = ins, score
        if best_index is not None and best_score > threshold:
            claimed.add(best_index)
            pairs.append(ModifiedPair(d, best_index, best_score))
    return pairs


def _change_runs(lines: List[DiffLine]) -> List[List[int]]:
    """Indices of each maximal run of deleted/inserted lines, in order."""
    runs: List[List[int]] = []
    current: List[int] = []
    for index, line in enumerate(lines):
        if line.kind is LineKind.UNCHANGED:
            if current:
                runs.append(current)
                current = []
        else:
            current.append(index)
    if current:
        runs.append(current)
    return runs


def drawable_pairs(lines: List[DiffLine], pairs: List[ModifiedPair]) -> List[ModifiedPair]:
    """The pairs that can share a row without reordering either pane.

    A pair is kept when both of its lines sit in the same run of changes
    and it does not cross a pair kept before it.  The others are drawn as
    a plain deletion and a plain insertion.
    """
    run_of: Dict[int, int] = {}
    for run_no, run in enumerate(_change_runs(lines)):
        for index in run:
            run_of[index] = run_no

    kept: List[ModifiedPair] = []
    last_inserted = -1
    for pair in sorted(pairs, key=lambda p: p.deleted_index):
        if run_of[pair.deleted_index] != run_of[pair.inserted_index]:
            continue
        if pair.inserted_index < last_inserted:
            continue
        kept.append(pair)
        last_inserted = pair.inserted_index
    return kept


class LineAligner:
    """Builds the two-pane aligned rendering of an old/new text pair."""

    def __init__(
        self,
        pairing_threshold: float = DEFAULT_PAIRING_THRESHOLD,
        token_min_length: int = DEFAULT_TOKEN_MIN_LENGTH,
        token_similarity_floor: float = DEFAULT_TOKEN_SIMILARITY_FLOOR,
    ) -> None:
        self.pairing_threshold = pairing_threshold
        self.token_min_length = token_min_length
        self.token_similarity_floor = token_similarity_floor

    def align(self, old_text: str, new_text: str) -> AlignedDiff:
        """Diff two texts and lay the result out as two equal-length panes.

        Args:
            old_text: Full old text (e.g. the old method source).
            new_text: Full new text.

        Returns:
            AlignedDiff whose ``old_pane`` and ``new_pane`` have the same
            number of rows, each in its own version's line order, with
            every pair in ``pairs`` on a shared row.
        """
        lines = diff_lines(old_text, new_text)
        pairs = drawable_pairs(lines, pair_similar_lines(lines, self.pairing_threshold))
        old_pane, new_pane = self._build_panes(lines, pairs)
        return AlignedDiff(lines=lines, pairs=pairs, old_pane=old_pane, new_pane=new_pane)

    def _build_panes(self, lines: List[DiffLine], pairs: List[ModifiedPair]):
        by_deleted = {pair.deleted_index: pair for pair in pairs}
        old_pane: List[PaneRow] = []
        new_pane: List[PaneRow] = []

        run: List[int] = []
        for index, line in enumerate(lines):
            if line.kind is not LineKind.UNCHANGED:
                run.append(index)
                continue
            if run:
                self._place_run(lines, run, by_deleted, old_pane, new_pane)
                run = []
            for pane in (old_pane, new_pane):
                pane.append(PaneRow(
                    kind=RowKind.UNCHANGED,
                    old_number=line.old_number,
                    new_number=line.new_number,
                    segments=_whole(line.content, changed=False),
                    source_index=index,
                ))
        if run:
            self._place_run(lines, run, by_deleted, old_pane, new_pane)

        return old_pane, new_pane

    def _place_run(
        self,
        lines: List[DiffLine],
        run: List[int],
        by_deleted: Dict[int, ModifiedPair],
        old_pane: List[PaneRow],
        new_pane: List[PaneRow],
    ) -> None:
        # Unpaired lines ahead of a pair go above its shared row.
        deleted = [i for i in run if lines[i].kind is LineKind.DELETED]
        inserted = [i for i in run if lines[i].kind is LineKind.INSERTED]
        d_pos = i_pos = 0

        for pair in (by_deleted[d] for d in deleted if d in by_deleted):
            while deleted[d_pos] != pair.deleted_index:
                self._deletion(lines, deleted[d_pos], old_pane, new_pane)
                d_pos += 1
            while inserted[i_pos] != pair.inserted_index:
                self._insertion(lines, inserted[i_pos], old_pane, new_pane)
                i_pos += 1
            self._modified(lines, pair, old_pane, new_pane)
            d_pos += 1
            i_pos += 1

        for index in deleted[d_pos:]:
            self._deletion(lines, index, old_pane, new_pane)
        for index in inserted[i_pos:]:
            self._insertion(lines, index, old_pane, new_pane)

    def _modified(self, lines: List[DiffLine], pair: ModifiedPair, old_pane, new_pane) -> None:
        old_line = lines[pair.deleted_index]
        new_line = lines[pair.inserted_index]
        old_pane.append(PaneRow(
            kind=RowKind.MODIFIED,
            old_number=old_line.old_number,
            new_number=new_line.new_number,
            segments=self._token_segments(old_line, new_line, Side.OLD),
            source_index=pair.deleted_index,
        ))
        new_pane.append(PaneRow(
            kind=RowKind.MODIFIED,
            old_number=old_line.old_number,
            new_number=new_line.new_number,
            segments=self._token_segments(old_line, new_line, Side.NEW),
            source_index=pair.inserted_index,
        ))

    @staticmethod
    def _deletion(lines: List[DiffLine], index: int, old_pane, new_pane) -> None:
        line = lines[index]
        old_pane.append(PaneRow(
            kind=RowKind.DELETED,
            old_number=line.old_number,
            segments=_whole(line.content, changed=True),
            source_index=index,
        ))
        new_pane.append(PaneRow(kind=RowKind.PLACEHOLDER))

    @staticmethod
    def _insertion(lines: List[DiffLine], index: int, old_pane, new_pane) -> None:
        line = lines[index]
        old_pane.append(PaneRow(kind=RowKind.PLACEHOLDER))
        new_pane.append(PaneRow(
            kind=RowKind.INSERTED,
            new_number=line.new_number,
            segments=_whole(line.content, changed=True),
            source_index=index,
        ))

    def _token_segments(self, old_line: DiffLine, new_line: DiffLine, side: Side) -> List[DiffSegment]:
        return diff_tokens(
            old_line.content,
            new_line.content,
            side,
            min_length=self.token_min_length,
            similarity_floor=self.token_similarity_floor,
        )


def _whole(text: str, changed: bool) -> List[DiffSegment]:
    return [DiffSegment(text, changed)] if text else []
