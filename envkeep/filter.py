"""
Filter engine: fuzzy narrowing of the entry list with a stable cursor.

A query matches when its characters appear, in order and ignoring case, in
the entry's target string (``name label`` or ``name dirname/filename``).
Matches are ranked by ``match_score``. ``FilterView`` keeps the cursor on the
same entry while the query changes and scrolls a fixed-height window only
when the cursor leaves it.
"""
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Optional

from .entries import RuntimeEntry


def fuzzy_target(entry: RuntimeEntry) -> str:
    """String the query is matched against.

    External entries use their origin (``dirname/filename``) instead of the
    stored label, so the "from " prefix of the label is not searchable.
    """
    extra = entry.origin if entry.source_file else entry.label
    if not extra:
        return entry.name
    return f"{entry.name} {extra}"


def match_positions(query: str, target: str) -> Optional[list[int]]:
    """Positions in ``target`` matched by ``query`` (leftmost, case-insensitive).

    Returns:
        Matched character indices into ``target``; an empty list for an empty
        query; None when ``query`` is not a subsequence of ``target``.
    """
    positions: list[int] = []
    qi = 0
    for i, char in enumerate(target):
        if qi == len(query):
            break
        if char.lower() == query[qi].lower():
            positions.append(i)
            qi += 1
    if qi < len(query):
        return None
    return positions


FIRST_CHAR_BONUS = 10
SEPARATOR_BONUS = 20
CAMEL_CASE_BONUS = 20
ADJACENT_BONUS = 5
LEADING_PENALTY = -5
MAX_LEADING_PENALTY = -15
SEPARATORS = frozenset("/-_ .\\")


def match_score(target: str, positions: Sequence[int]) -> int:
    """Rank a match: tight, word-aligned matches near the start score highest.

    Each matched character earns a bonus when it is the first character, when
    it follows a separator or starts a camelCase word, and when it directly
    follows the previous match. Unmatched characters before the first match
    cost ``LEADING_PENALTY`` each (at most ``MAX_LEADING_PENALTY``), and every
    other unmatched character costs one point.
    """
    if not positions:
        return 0
    score = 0
    previous = None
    for pos in positions:
        if pos == 0:
            score += FIRST_CHAR_BONUS
        elif target[pos - 1] in SEPARATORS:
            score += SEPARATOR_BONUS
        elif target[pos].isupper() and target[pos - 1].islower():
            score += CAMEL_CASE_BONUS
        if previous is not None and pos == previous + 1:
            score += ADJACENT_BONUS
        previous = pos
    score += max(LEADING_PENALTY * positions[0], MAX_LEADING_PENALTY)
    score -= len(target) - len(positions)
    return score


@dataclass
class Match:
    index: int
    positions: list[int]
    score: int = 0


def find_matches(query: str, targets: Sequence[str]) -> list[Match]:
    """Matches for every target containing ``query``, best score first.

    Targets with equal scores keep their input order.
    """
    matches = []
    for i, target in enumerate(targets):
        positions = match_positions(query, target)
        if positions is not None:
            matches.append(Match(index=i, positions=positions, score=match_score(target, positions)))
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches


class FilterView:
    """Filtered, scrollable view over a list of entries.

    ``indices`` holds absolute entry indices in display order; ``cursor`` is a
    display index into it (None when nothing is visible).
    """

    def __init__(self, entries: Sequence[RuntimeEntry], height: int = 20):
        self.entries = entries
        self.height = max(height, 1)
        self.query = ""
        self.indices: list[int] = []
        self.positions: dict[int, list[int]] = {}
        self.cursor: Optional[int] = None
        self.viewport_start = 0
        self.recompute()

    def __len__(self) -> int:
        return len(self.indices)

    @property
    def current(self) -> Optional[int]:
        """Absolute index of the entry under the cursor."""
        if self.cursor is None or self.cursor >= len(self.indices):
            return None
        return self.indices[self.cursor]

    def set_entries(self, entries: Sequence[RuntimeEntry]) -> None:
        self.entries = entries
        self.recompute()

    def set_query(self, query: str) -> None:
        self.query = query
        self.recompute()

    def clear(self) -> None:
        self.set_query("")

    def recompute(self) -> None:
        """Re-filter, keeping the cursor on the same entry where possible.

        If that entry is filtered out, the cursor moves to the nearest earlier
        entry that is still visible, else to the first visible entry.
        """
        target = self.current
        if target is None:
            target = 0

        query = self.query.strip()
        if not query:
            self.indices = list(range(len(self.entries)))
            self.positions = {}
        else:
            matches = find_matches(query, [fuzzy_target(e) for e in self.entries])
            self.indices = [m.index for m in matches]
            self.positions = {m.index: m.positions for m in matches}

        if not self.indices:
            self.cursor = None
        else:
            display = {abs_idx: disp for disp, abs_idx in enumerate(self.indices)}
            self.cursor = 0
            for candidate in range(target, -1, -1):
                if candidate in display:
                    self.cursor = display[candidate]
                    break
        self.adjust_viewport()

    def focus(self, index: int) -> bool:
        """Point the cursor at absolute ``index`` if it is visible."""
        for disp, abs_idx in enumerate(self.indices):
            if abs_idx == index:
                self.cursor = disp
                self.adjust_viewport()
                return True
        return False

    def move_up(self) -> None:
        if not self.indices:
            return
        cursor = self.cursor or 0
        self.cursor = cursor - 1 if cursor > 0 else len(self.indices) - 1
        self.adjust_viewport()

    def move_down(self) -> None:
        if not self.indices:
            return
        cursor = self.cursor or 0
        self.cursor = cursor + 1 if cursor < len(self.indices) - 1 else 0
        self.adjust_viewport()

    def adjust_viewport(self) -> None:
        """Scroll only as far as needed to keep the cursor visible."""
        if not self.indices or self.cursor is None:
            self.viewport_start = 0
            return
        if self.cursor < self.viewport_start:
            self.viewport_start = self.cursor
        if self.cursor >= self.viewport_start + self.height:
            self.viewport_start = self.cursor - self.height + 1
        max_start = max(len(self.indices) - self.height, 0)
        self.viewport_start = min(max(self.viewport_start, 0), max_start)

    @property
    def has_above(self) -> bool:
        return self.viewport_start > 0

    @property
    def has_below(self) -> bool:
        return self.viewport_start + self.height < len(self.indices)

    def visible(self) -> Iterator[tuple[int, int]]:
        """Yield ``(display_index, absolute_index)`` for the rows in the window."""
        end = min(self.viewport_start + self.height, len(self.indices))
        for disp in range(self.viewport_start, end):
            yield disp, self.indices[disp]
