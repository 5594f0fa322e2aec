from typing import Dict, Any, Iterable, List, Sequence

from catalog.config import EMPTY_VALUE
from catalog.services.common import natural_key
from catalog.services.facets import (
    FACET_FIELDS,
    FacetField,
    FacetKind,
    categorical_of,
    hierarchy_of,
    range_of,
    tokens_of,
)
from catalog.services.parsing import token_display_map, variant_key
from catalog.services.records import RowRecord


def _sorted_options(values: Iterable[str]) -> List[str]:
    """
    Sorts option values naturally; the EMPTY sentinel always goes last.
    """
    value_set = set(values)
    ordered = sorted(value_set - {EMPTY_VALUE}, key=natural_key)
    if EMPTY_VALUE in value_set:
        ordered.append(EMPTY_VALUE)
    return ordered

def generate_facet_options(
    rows: Sequence[RowRecord],
    fields: Iterable[FacetField] = FACET_FIELDS,
) -> Dict[str, Any]:
    """
    Builds the selectable options of every facet for the sidebar.
    """
    filter_options: Dict[str, Any] = {}

    for facet in fields:
        entry: Dict[str, Any] = {"kind": facet.kind.value, "label": facet.label, "column": facet.column}

        if facet.kind == FacetKind.CATEGORICAL:
            entry["options"] = _sorted_options(categorical_of(facet, row) for row in rows)

        elif facet.kind == FacetKind.RANGE:
            numbers: List[int] = []
            text_options = set()
            for row in rows:
                parsed = range_of(facet, row)
                if parsed is None:
                    continue
                if parsed.is_numeric:
                    numbers.extend((parsed.minimum, parsed.maximum))
                else:
                    text_options.add(parsed.text)
            entry["minimum"] = min(numbers) if numbers else None
            entry["maximum"] = max(numbers) if numbers else None
            entry["options"] = _sorted_options(text_options)

        elif facet.kind == FacetKind.TOKENS:
            display = token_display_map(tokens_of(facet, row) for row in rows)
            entry["options"] = _sorted_options(display.values())

        else:
            variants_by_group: Dict[str, set] = {}
            for row in rows:
                group, variant = hierarchy_of(facet, row)
                variants_by_group.setdefault(group, set())
                if variant is not None:
                    variants_by_group[group].add(variant)
            entry["options"] = [
                {
                    "group": group,
                    "variants": [
                        {"label": v, "value": variant_key(group, v)}
                        for v in sorted(variants_by_group[group], key=natural_key)
                    ],
                }
                for group in _sorted_options(variants_by_group)
            ]

        filter_options[facet.name] = entry

    return filter_options
