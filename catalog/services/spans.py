"""
Merge reconstruction.

Spreadsheet exports record cell merges as inclusive row/column rectangles
relative to the raw sheet. ``build_span_map`` remaps those rectangles onto
one manuscript's row block and the caller's visible columns, producing a
pure ``SpanMap`` the renderer can walk cell by cell. When no merge
metadata exists for a source, ``span_plan.plan_spans`` falls back to the
constant-value heuristic in ``catalog.services.heuristics``.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from catalog.logging_setup import logger
from catalog.services.records import Degradation, RowRecord

Cell = Tuple[int, int]

PLACED = "placed"
REPLACED = "replaced"
OVERLAP = "overlap"


@dataclass(frozen=True)
class MergeRange:
    min_row: int
    max_row: int
    min_col: Union[int, str]
    max_col: Union[int, str]


@dataclass
class Span:
    row_span: int
    col_span: int
    # Replacement text for the merged cell; None renders the origin cell as stored.
    text: Optional[str] = None


@dataclass
class SpanMap:
    columns: List[str]
    origins: Dict[Cell, Span] = field(default_factory=dict)
    covered: Set[Cell] = field(default_factory=set)
    skipped: List[Tuple[int, Degradation]] = field(default_factory=list)
    conflicts: List[int] = field(default_factory=list)

    @staticmethod
    def rectangle(origin: Cell, span: Span) -> Set[Cell]:
        top, left = origin
        return {
            (r, c)
            for r in range(top, top + span.row_span)
            for c in range(left, left + span.col_span)
        }

    def origin_at(self, row: int, col: int) -> Optional[Span]:
        return self.origins.get((row, col))

    def is_covered(self, row: int, col: int) -> bool:
        return (row, col) in self.covered

    def claimed_columns(self) -> Set[int]:
        claimed = {c for _, c in self.covered}
        claimed.update(c for _, c in self.origins)
        return claimed

    def place(self, top: int, left: int, row_span: int, col_span: int,
              text: Optional[str] = None) -> str:
        """
        Records one merged rectangle. A rectangle that intersects a different
        origin's rectangle is refused; one that lands on an existing origin
        replaces it (last write wins).
        """
        origin = (top, left)
        span = Span(row_span=row_span, col_span=col_span, text=text)
        cells = self.rectangle(origin, span)
        for other, other_span in self.origins.items():
            if other == origin:
                continue
            if cells & self.rectangle(other, other_span):
                return OVERLAP

        status = PLACED
        previous = self.origins.get(origin)
        if previous is not None:
            self.covered -= self.rectangle(origin, previous)
            status = REPLACED

        self.origins[origin] = span
        self.covered.update(cells - {origin})
        return status

    def to_dict(self) -> Dict[str, object]:
        return {
            "columns": self.columns,
            "origins": [
                {"row": r, "col": c, "row_span": s.row_span, "col_span": s.col_span, "text": s.text}
                for (r, c), s in sorted(self.origins.items())
            ],
            "covered": [{"row": r, "col": c} for r, c in sorted(self.covered)],
            "skipped": [{"range": i, "reason": reason.value} for i, reason in self.skipped],
            "conflicts": list(self.conflicts),
        }


def _resolve_column(bound: Union[int, str], full_columns: Sequence[str]) -> Optional[int]:
    if isinstance(bound, bool):
        return None
    if isinstance(bound, int):
        return bound if 0 <= bound < len(full_columns) else None
    if isinstance(bound, str):
        try:
            return list(full_columns).index(bound)
        except ValueError:
            return None
    return None

def _place_range(
    merge: MergeRange,
    local_rows: Mapping[int, int],
    full_columns: Sequence[str],
    visible_index: Mapping[str, int],
    excluded: Set[str],
) -> Union[Degradation, List[Tuple[int, int, int, int]]]:
    """
    Maps one merge range onto the manuscript grid. Returns the local
    (top, left, row_span, col_span) rectangles to place, or a Degradation
    when the range cannot be applied. A visible excluded column inside the
    range splits it, so the excluded cells are never covered.
    """
    if not isinstance(merge.min_row, int) or not isinstance(merge.max_row, int):
        return Degradation.RANGE_OUT_OF_BOUNDS
    lo, hi = sorted((merge.min_row, merge.max_row))
    if hi - lo + 1 > len(local_rows):
        return Degradation.RANGE_OUT_OF_BOUNDS

    local = []
    for source_row in range(lo, hi + 1):
        if source_row not in local_rows:
            return Degradation.RANGE_OUT_OF_BOUNDS
        local.append(local_rows[source_row])
    # Source rows must stay contiguous inside the block or the rectangle would swallow strangers.
    if max(local) - min(local) != hi - lo:
        return Degradation.RANGE_OUT_OF_BOUNDS

    first = _resolve_column(merge.min_col, full_columns)
    last = _resolve_column(merge.max_col, full_columns)
    if first is None or last is None:
        return Degradation.UNRESOLVABLE_COLUMN
    first, last = sorted((first, last))

    visible = [
        visible_index[full_columns[c]]
        for c in range(first, last + 1)
        if full_columns[c] in visible_index and full_columns[c] not in excluded
    ]
    if not visible:
        return []

    blocked = sorted(visible_index[c] for c in excluded if c in visible_index)
    segments: List[List[int]] = []
    for position in sorted(visible):
        if segments and not any(segments[-1][-1] < b < position for b in blocked):
            segments[-1].append(position)
        else:
            segments.append([position])

    top = min(local)
    row_span = hi - lo + 1
    placements = []
    for segment in segments:
        left, right = segment[0], segment[-1]
        col_span = right - left + 1
        if row_span > 1 or col_span > 1:
            placements.append((top, left, row_span, col_span))
    return placements

def build_span_map(
    manuscript_rows: Sequence[RowRecord],
    source_id: str,
    full_columns: Sequence[str],
    visible_columns: Sequence[str],
    merge_ranges_by_source: Optional[Mapping[str, Sequence[MergeRange]]],
    excluded_columns: Iterable[str] = (),
) -> Optional[SpanMap]:
    """
    Builds the span map for one manuscript from merge-range metadata.

    Returns None when the source has no merge metadata at all; the caller is
    expected to use the heuristic instead. Ranges that cannot be applied are
    skipped and listed in ``SpanMap.skipped``; nothing here raises on bad
    metadata.
    """
    ranges = (merge_ranges_by_source or {}).get(source_id)
    if ranges is None:
        return None

    local_rows = {
        row.source_row_index: position
        for position, row in enumerate(manuscript_rows)
        if row.source_id == source_id
    }
    visible_index = {name: i for i, name in enumerate(visible_columns)}
    excluded = set(excluded_columns)
    span_map = SpanMap(columns=list(visible_columns))

    for index, merge in enumerate(ranges):
        placements = _place_range(merge, local_rows, full_columns, visible_index, excluded)
        if isinstance(placements, Degradation):
            span_map.skipped.append((index, placements))
            continue
        if not placements:
            continue

        statuses = [span_map.place(*placement) for placement in placements]
        if OVERLAP in statuses:
            span_map.skipped.append((index, Degradation.OVERLAPPING_RANGE))
            logger.warning(
                "Merge range overlaps an earlier range; skipped",
                extra={"source_id": source_id, "range_index": index},
            )
        elif REPLACED in statuses:
            span_map.conflicts.append(index)
            logger.warning(
                "Merge range replaces an earlier range on the same origin cell",
                extra={"source_id": source_id, "range_index": index},
            )

    if span_map.skipped:
        logger.debug(
            "Skipped merge ranges",
            extra={"source_id": source_id, "skipped": [(i, r.value) for i, r in span_map.skipped]},
        )
    return span_map
