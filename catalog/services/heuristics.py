from typing import Iterable, List, Optional, Sequence, Tuple

from catalog.config import ALWAYS_MERGED_COLUMNS
from catalog.services.records import Column, RowRecord
from catalog.services.spans import SpanMap
from catalog.textual_manipulation import normalize_cell


def production_unit_runs(rows: Sequence[RowRecord]) -> List[Tuple[int, int]]:
    """
    Maximal runs of rows sharing one effective Production Unit, as
    (start, length). A blank cell continues the previous row's unit; the
    stored cell is left untouched.
    """
    runs: List[Tuple[int, int]] = []
    current: Optional[str] = None
    for position, row in enumerate(rows):
        value = normalize_cell(row.get(Column.PRODUCTION_UNIT))
        effective = value if value or current is None else current
        if runs and effective == current:
            start, length = runs[-1]
            runs[-1] = (start, length + 1)
        else:
            runs.append((position, 1))
        current = effective
    return runs

def aggregate_values(values: Iterable[str]) -> str:
    """Distinct non-empty values in first-seen order, one per line."""
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return "\n".join(seen)

def build_heuristic_span_map(
    rows: Sequence[RowRecord],
    visible_columns: Sequence[str],
    columns: Optional[Iterable[str]] = None,
) -> SpanMap:
    """
    Span map for a manuscript without merge metadata.

    - Links and bibliography cells always collapse into one
      manuscript-wide cell carrying the aggregated text.
    - A column with one value across the manuscript spans all rows.
    - Otherwise the Production Unit column, and any column constant inside
      a Production Unit run, spans each run of two or more rows.
    Only columns in ``columns`` are considered when it is given.
    """
    span_map = SpanMap(columns=list(visible_columns))
    if len(rows) < 2:
        return span_map

    wanted = set(columns) if columns is not None else None
    runs = production_unit_runs(rows)
    height = len(rows)

    for col, column in enumerate(visible_columns):
        if wanted is not None and column not in wanted:
            continue
        values = [normalize_cell(row.get(column)) for row in rows]

        if column in ALWAYS_MERGED_COLUMNS:
            text = None if len(set(values)) == 1 else aggregate_values(values)
            span_map.place(0, col, height, 1, text=text)
            continue

        if len(set(values)) == 1:
            span_map.place(0, col, height, 1)
            continue

        for start, length in runs:
            if length < 2:
                continue
            if column == Column.PRODUCTION_UNIT.value or len(set(values[start:start + length])) == 1:
                span_map.place(start, col, length, 1)

    return span_map
