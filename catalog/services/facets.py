"""
Facet filtering and live option counts.

The universe is either a list of rows (flat table) or a list of manuscript
groups (merged view); a manuscript matches a facet when any of its rows
does. Counts for a facet are taken over the records that pass every
*other* active facet plus the free-text query, so an option stays
choosable after its own facet has been narrowed.
"""
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from catalog.config import VARIANT_SEPARATOR
from catalog.services.parsing import (
    ParsedRange,
    categorical_value,
    parse_dating_year,
    parse_line_range,
    production_unit_tokens,
    split_main_text,
    split_tokens,
    token_display_map,
    unit_count_value,
    variant_key,
)
from catalog.services.records import Column, ManuscriptGroup, RowRecord
from catalog.textual_manipulation import normalize_token

Record = Union[RowRecord, ManuscriptGroup]
Predicate = Callable[[RowRecord], bool]

ALL_OPTION = "All"


class FacetKind(str, Enum):
    CATEGORICAL = "categorical"
    RANGE = "range"
    TOKENS = "tokens"
    HIERARCHICAL = "hierarchical"


@dataclass(frozen=True)
class FacetField:
    name: str
    kind: FacetKind
    column: str
    label: str
    # Key in RowRecord.derived holding the pre-parsed value, if any.
    derived: Optional[str] = None


@dataclass(frozen=True)
class FacetSelection:
    values: FrozenSet[str] = frozenset()
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def __post_init__(self):
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            low, high = self.maximum, self.minimum
            object.__setattr__(self, "minimum", low)
            object.__setattr__(self, "maximum", high)

    @property
    def has_range(self) -> bool:
        return self.minimum is not None or self.maximum is not None

    @property
    def is_active(self) -> bool:
        return bool(self.values) or self.has_range


@dataclass
class FacetCounts:
    base_total: int
    counts: Dict[str, int] = field(default_factory=dict)
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    unparsed: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "base_total": self.base_total,
            ALL_OPTION: self.base_total,
            "counts": dict(self.counts),
            "minimum": self.minimum,
            "maximum": self.maximum,
            "unparsed": self.unparsed,
        }


FACET_FIELDS: List[FacetField] = [
    FacetField("depository", FacetKind.CATEGORICAL, Column.DEPOSITORY.value, "Depository"),
    FacetField("object", FacetKind.CATEGORICAL, Column.OBJECT.value, "Object"),
    FacetField("material", FacetKind.CATEGORICAL, Column.MATERIAL.value, "Material"),
    FacetField("script", FacetKind.CATEGORICAL, Column.SCRIPT.value, "Script"),
    FacetField("scribe", FacetKind.CATEGORICAL, Column.SCRIBE.value, "Scribe"),
    FacetField("unit_count", FacetKind.CATEGORICAL, Column.PRODUCTION_UNIT.value,
               "Number of production units", derived="unit_count"),
    FacetField("dating", FacetKind.RANGE, Column.DATING.value, "Dating", derived="dating_year"),
    FacetField("lines", FacetKind.RANGE, Column.LINES.value, "Number of lines", derived="lines"),
    FacetField("minor_text", FacetKind.TOKENS, Column.MINOR_TEXT.value, "Minor text", derived="minor_tokens"),
    FacetField("production_units", FacetKind.TOKENS, Column.PRODUCTION_UNIT.value,
               "Production units", derived="unit_tokens"),
    FacetField("main_text", FacetKind.HIERARCHICAL, Column.MAIN_TEXT.value, "Main text"),
]
FACET_FIELDS_BY_NAME: Dict[str, FacetField] = {f.name: f for f in FACET_FIELDS}


# --- PER-ROW VALUE ACCESS ---
# Enrichment caches parsed values in RowRecord.derived; rows that skipped
# enrichment are parsed on the fly.

def categorical_of(facet: FacetField, row: RowRecord) -> str:
    if facet.derived and facet.derived in row.derived:
        return row.derived[facet.derived]
    if facet.derived == "unit_count":
        return unit_count_value([row.get(facet.column)])
    return categorical_value(row.get(facet.column))

def range_of(facet: FacetField, row: RowRecord) -> Optional[ParsedRange]:
    if facet.derived == "dating_year":
        year = row.derived.get("dating_year") if "dating_year" in row.derived else parse_dating_year(row.get(facet.column))
        return ParsedRange(minimum=year, maximum=year) if year is not None else None
    if facet.derived and facet.derived in row.derived:
        return row.derived[facet.derived]
    return parse_line_range(row.get(facet.column))

def tokens_of(facet: FacetField, row: RowRecord) -> List[str]:
    if facet.derived and facet.derived in row.derived:
        return row.derived[facet.derived]
    if facet.column == Column.PRODUCTION_UNIT.value:
        return production_unit_tokens(row.get(facet.column))
    return split_tokens(row.get(facet.column))

def hierarchy_of(facet: FacetField, row: RowRecord) -> Tuple[str, Optional[str]]:
    if "main_group" in row.derived:
        return row.derived["main_group"], row.derived.get("main_variant")
    return split_main_text(row.get(facet.column))

def rows_of(record: Record) -> Sequence[RowRecord]:
    if isinstance(record, ManuscriptGroup):
        return record.rows
    return (record,)


# --- MATCHING ---

def _compile(facet: FacetField, selection: FacetSelection) -> Predicate:
    """Builds the single-row predicate for one active facet selection."""
    values = selection.values

    if facet.kind == FacetKind.CATEGORICAL:
        return lambda row: categorical_of(facet, row) in values

    if facet.kind == FacetKind.RANGE:
        low, high = selection.minimum, selection.maximum

        def match_range(row: RowRecord) -> bool:
            parsed = range_of(facet, row)
            if parsed is None:
                return False
            if parsed.is_numeric:
                if selection.has_range:
                    return (high is None or parsed.minimum <= high) and (low is None or parsed.maximum >= low)
                return parsed.label in values
            return parsed.text in values
        return match_range

    if facet.kind == FacetKind.TOKENS:
        wanted = {normalize_token(v) for v in values}
        return lambda row: any(normalize_token(t) in wanted for t in tokens_of(facet, row))

    variants = {v for v in values if VARIANT_SEPARATOR in v}

    def match_hierarchy(row: RowRecord) -> bool:
        group, variant = hierarchy_of(facet, row)
        # Any variant selection switches off group-only selections.
        if variants:
            return variant is not None and variant_key(group, variant) in variants
        return group in values
    return match_hierarchy

def compile_selections(
    selections: Optional[Mapping[str, FacetSelection]],
    fields: Iterable[FacetField] = FACET_FIELDS,
) -> Dict[str, Predicate]:
    compiled: Dict[str, Predicate] = {}
    if not selections:
        return compiled
    for facet in fields:
        selection = selections.get(facet.name)
        if selection is not None and selection.is_active:
            compiled[facet.name] = _compile(facet, selection)
    return compiled

def matches_text(record: Record, query: Optional[str]) -> bool:
    """Case-insensitive substring search over every value of every row."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(
        needle in str(value).lower()
        for row in rows_of(record)
        for _, value in row.items()
    )

def _passes(record: Record, predicates: Iterable[Predicate]) -> bool:
    rows = rows_of(record)
    return all(any(predicate(row) for row in rows) for predicate in predicates)

def filter_records(
    universe: Sequence[Record],
    selections: Optional[Mapping[str, FacetSelection]],
    query: Optional[str] = None,
    fields: Iterable[FacetField] = FACET_FIELDS,
) -> List[Record]:
    """Records passing every active facet and the free-text query, in input order."""
    predicates = list(compile_selections(selections, fields).values())
    return [r for r in universe if matches_text(r, query) and _passes(r, predicates)]


# --- COUNTING ---

def _option_keys(facet: FacetField, row: RowRecord, display: Mapping[str, str]) -> List[str]:
    if facet.kind == FacetKind.CATEGORICAL:
        return [categorical_of(facet, row)]
    if facet.kind == FacetKind.RANGE:
        parsed = range_of(facet, row)
        return [parsed.label] if parsed is not None else []
    if facet.kind == FacetKind.TOKENS:
        keys = []
        for token in tokens_of(facet, row):
            label = display.get(normalize_token(token))
            if label is not None:
                keys.append(label)
        return keys
    group, variant = hierarchy_of(facet, row)
    keys = [group]
    if variant is not None:
        keys.append(variant_key(group, variant))
    return keys

def _count_field(facet: FacetField, base: Sequence[Record], display: Mapping[str, str]) -> FacetCounts:
    counter: Counter = Counter()
    result = FacetCounts(base_total=len(base))
    for record in base:
        keys = set()
        numeric = False
        for row in rows_of(record):
            keys.update(_option_keys(facet, row, display))
            if facet.kind == FacetKind.RANGE:
                parsed = range_of(facet, row)
                if parsed is not None and parsed.is_numeric:
                    numeric = True
                    result.minimum = parsed.minimum if result.minimum is None else min(result.minimum, parsed.minimum)
                    result.maximum = parsed.maximum if result.maximum is None else max(result.maximum, parsed.maximum)
        if facet.kind == FacetKind.RANGE and not numeric:
            result.unparsed += 1
        counter.update(keys)
    result.counts = dict(counter)
    return result

def compute_counts(
    universe: Sequence[Record],
    selections: Optional[Mapping[str, FacetSelection]],
    query: Optional[str] = None,
    fields: Iterable[FacetField] = FACET_FIELDS,
) -> Dict[str, FacetCounts]:
    """
    Per-facet option counts under exclusion semantics: facet F is counted
    over the records matching the query and every active facet except F.
    One pass over the universe per facet.
    """
    fields = list(fields)
    predicates = compile_selections(selections, fields)
    searched = [r for r in universe if matches_text(r, query)]

    display: Dict[str, Dict[str, str]] = {}
    for facet in fields:
        if facet.kind == FacetKind.TOKENS:
            display[facet.name] = token_display_map(
                tokens_of(facet, row) for record in universe for row in rows_of(record)
            )

    results: Dict[str, FacetCounts] = {}
    for facet in fields:
        others = [p for name, p in predicates.items() if name != facet.name]
        base = [r for r in searched if _passes(r, others)]
        results[facet.name] = _count_field(facet, base, display.get(facet.name, {}))
    return results
