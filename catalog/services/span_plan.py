from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from catalog.config import HEURISTIC_ONLY_COLUMNS
from catalog.services.heuristics import build_heuristic_span_map
from catalog.services.records import Degradation, ManuscriptGroup
from catalog.services.spans import MergeRange, SpanMap, build_span_map


@dataclass
class SpanPlan:
    span_map: SpanMap
    fallback_reason: Optional[Degradation] = None

    @property
    def used_heuristic(self) -> bool:
        return self.fallback_reason is not None

    def to_dict(self) -> Dict[str, object]:
        payload = self.span_map.to_dict()
        payload["fallback_reason"] = self.fallback_reason.value if self.fallback_reason else None
        return payload


def plan_spans(
    group: ManuscriptGroup,
    full_columns: Sequence[str],
    visible_columns: Sequence[str],
    merge_ranges_by_source: Optional[Mapping[str, Sequence[MergeRange]]],
) -> SpanPlan:
    """
    Chooses between merge metadata and the heuristic for one manuscript.
    Columns in HEURISTIC_ONLY_COLUMNS are spanned by the heuristic wherever
    the metadata left them untouched. Degenerate manuscripts have no key to
    resolve metadata by and always take the heuristic.
    """
    span_map = None
    if group.rows and not group.is_degenerate:
        span_map = build_span_map(
            group.rows,
            group.rows[0].source_id,
            full_columns,
            visible_columns,
            merge_ranges_by_source,
            excluded_columns=HEURISTIC_ONLY_COLUMNS,
        )
    if span_map is None:
        return SpanPlan(
            span_map=build_heuristic_span_map(group.rows, visible_columns),
            fallback_reason=Degradation.NO_MERGE_METADATA,
        )

    claimed = span_map.claimed_columns()
    extra = build_heuristic_span_map(
        group.rows,
        visible_columns,
        columns=[c for i, c in enumerate(visible_columns) if c in HEURISTIC_ONLY_COLUMNS and i not in claimed],
    )
    for (top, left), span in extra.origins.items():
        span_map.place(top, left, span.row_span, span.col_span, text=span.text)
    return SpanPlan(span_map=span_map)
