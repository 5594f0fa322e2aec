from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from catalog.config import ABBREVIATIONS_LOCATION, DATASETS, PREFERRED_COLUMNS
from catalog.http_client import fetch_json
from catalog.logging_setup import logger
from catalog.models import MergeRangeModel
from catalog.store import store
from catalog.services.grouping import group_rows, manuscript_key, sort_groups
from catalog.services.parsing import (
    parse_dating_year,
    parse_line_range,
    production_unit_tokens,
    split_main_text,
    split_tokens,
    unit_count_value,
)
from catalog.services.processing.filter_builder import generate_facet_options
from catalog.services.records import Column, Degradation, ManuscriptGroup, RowRecord
from catalog.services.spans import MergeRange
from catalog.services.tree import build_tree

# Converter bookkeeping columns carried by flat spreadsheet exports.
SOURCE_FIELD = "_source"
ROW_FIELD = "_row"

CONTENT_FIELDS = ["Leaves/Pages", "Main text", "Minor text", "Dating", "Scribe", "Script", "Number of lines"]


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)

def is_nested(documents: Sequence[Any]) -> bool:
    return any(isinstance(d, dict) and "Production Units" in d for d in documents)

def flatten_manuscripts(documents: Sequence[Mapping[str, Any]]) -> List[Dict[str, str]]:
    """
    Flattens manuscript -> Production Units -> Contents documents into one
    row per content entry. Manuscript-level fields are copied onto every
    row; each row also carries its unit's id and material.
    """
    rows: List[Dict[str, str]] = []
    for manuscript in documents:
        base = {k: _clean(v) for k, v in manuscript.items() if k != "Production Units"}
        base["Shelf mark"] = _clean(manuscript.get("Shelf mark"))

        for unit in manuscript.get("Production Units") or []:
            for content in unit.get("Contents") or []:
                row = dict(base)
                row["Production Unit"] = _clean(unit.get("Production Unit"))
                row["Material"] = _clean(unit.get("Material"))
                for name in CONTENT_FIELDS:
                    row[name] = _clean(content.get(name))
                rows.append(row)
    return rows

def raw_columns(raw_rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Column names in first-seen order, i.e. the raw sheet layout."""
    seen: Dict[str, None] = {}
    for row in raw_rows:
        for name in row:
            if name not in (SOURCE_FIELD, ROW_FIELD):
                seen.setdefault(name, None)
    return list(seen)

def preferred_columns(columns: Sequence[str]) -> List[str]:
    """Preferred columns first, then the remaining ones alphabetically."""
    present = set(columns)
    ordered = [c for c in PREFERRED_COLUMNS if c in present]
    ordered += sorted(c for c in present if c not in PREFERRED_COLUMNS)
    return ordered

def build_records(
    raw_rows: Sequence[Mapping[str, Any]],
    source_id: str,
    abbreviations: Optional[Mapping[str, str]] = None,
) -> List[RowRecord]:
    """
    Builds typed rows. Rows carrying converter bookkeeping (``_source`` /
    ``_row``) keep their own source and sheet row; other rows are numbered
    by position within ``source_id``.
    """
    records: List[RowRecord] = []
    for position, raw in enumerate(raw_rows):
        row_source = _clean(raw.get(SOURCE_FIELD)) or source_id
        row_index = raw.get(ROW_FIELD)
        if not isinstance(row_index, int) or isinstance(row_index, bool):
            row_index = position
        values = {k: v for k, v in raw.items() if k not in (SOURCE_FIELD, ROW_FIELD)}
        key = manuscript_key(
            _clean(raw.get(Column.DEPOSITORY.value)),
            _clean(raw.get(Column.SHELF_MARK.value)),
            abbreviations,
        )
        records.append(RowRecord.from_mapping(values, key, row_source, row_index))
    return records

def enrich_records(groups: Sequence[ManuscriptGroup]) -> None:
    """
    One-shot derived-field enrichment after load. Rows are read-only to the
    engines afterwards.
    """
    for group in groups:
        unit_count = unit_count_value(row.get(Column.PRODUCTION_UNIT) for row in group.rows)
        for row in group.rows:
            degradations: Dict[str, Degradation] = {}

            dating = row.get(Column.DATING)
            year = parse_dating_year(dating)
            if year is None and dating.strip():
                degradations["dating"] = Degradation.UNPARSEABLE_VALUE

            lines = parse_line_range(row.get(Column.LINES))
            if lines is not None and not lines.is_numeric:
                degradations["lines"] = Degradation.UNPARSEABLE_VALUE

            group_name, variant = split_main_text(row.get(Column.MAIN_TEXT))
            row.derived.update({
                "dating_year": year,
                "lines": lines,
                "minor_tokens": split_tokens(row.get(Column.MINOR_TEXT)),
                "unit_tokens": production_unit_tokens(row.get(Column.PRODUCTION_UNIT)),
                "unit_count": unit_count,
                "main_group": group_name,
                "main_variant": variant,
                "degradations": degradations,
            })

def parse_merge_ranges(payload: Any) -> Optional[Dict[str, List[MergeRange]]]:
    """
    Validates merge metadata ``{sourceId: [{minRow, maxRow, minCol, maxCol}]}``.
    None means no metadata at all; invalid entries are dropped with a warning.
    """
    if payload is None:
        return None
    if not isinstance(payload, dict):
        logger.warning("Merge metadata is not an object; ignored", extra={"type": type(payload).__name__})
        return None

    merges: Dict[str, List[MergeRange]] = {}
    for source_id, entries in payload.items():
        ranges: List[MergeRange] = []
        for index, entry in enumerate(entries if isinstance(entries, list) else []):
            try:
                model = MergeRangeModel.model_validate(entry)
            except ValidationError as e:
                logger.warning(
                    "Invalid merge range skipped",
                    extra={"source_id": source_id, "range_index": index, "error": str(e)},
                )
                continue
            ranges.append(MergeRange(model.min_row, model.max_row, model.min_col, model.max_col))
        merges[str(source_id)] = ranges
    return merges

def build_snapshot(
    dataset_id: str,
    documents: Sequence[Any],
    merges_payload: Any = None,
    abbreviations: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """
    Turns a loaded dataset into the in-memory snapshot the store serves.
    """
    raw_rows = flatten_manuscripts(documents) if is_nested(documents) else [d for d in documents if isinstance(d, dict)]
    records = build_records(raw_rows, dataset_id, abbreviations)
    groups = group_rows(records)
    enrich_records(groups)

    full_columns: Dict[str, List[str]] = {}
    for record in records:
        if record.source_id not in full_columns:
            full_columns[record.source_id] = raw_columns(
                [r for r in raw_rows if (_clean(r.get(SOURCE_FIELD)) or dataset_id) == record.source_id]
            )

    return {
        "dataset_id": dataset_id,
        "rows": records,
        "groups": sort_groups(groups),
        "groups_by_key": {g.key: g for g in groups},
        "columns": preferred_columns(raw_columns(raw_rows)),
        "full_columns": full_columns,
        "merge_ranges": parse_merge_ranges(merges_payload),
        "facet_options": generate_facet_options(records),
        "tree": build_tree(groups),
    }

async def load_dataset(dataset_id: str, refresh: bool = False) -> None:
    """
    Fetches a configured dataset with its merge metadata and depository
    abbreviations, and swaps the store snapshot. Fetches go through the
    store's resource cache, so repeated loads reuse earlier results.
    """
    locations = DATASETS[dataset_id]
    logger.info("--- Starting dataset load ---", extra={"dataset_id": dataset_id})
    store.mark_loading()
    if refresh:
        store.resources.reset()

    documents = await store.resources.get(locations["rows"], lambda: fetch_json(locations["rows"]))
    if documents is None or not isinstance(documents, list):
        logger.error("Dataset unavailable; store stays in loading state", extra={"dataset_id": dataset_id})
        return

    merges_payload = None
    if locations.get("merges"):
        merges_payload = await store.resources.get(locations["merges"], lambda: fetch_json(locations["merges"]))
    abbreviations = await store.resources.get(ABBREVIATIONS_LOCATION, lambda: fetch_json(ABBREVIATIONS_LOCATION))
    if not isinstance(abbreviations, dict):
        abbreviations = None

    try:
        snapshot = build_snapshot(dataset_id, documents, merges_payload, abbreviations)
    except Exception as e:
        logger.critical(f"Failed to build dataset snapshot: {e}", exc_info=True)
        return

    store.swap_cache(snapshot)
    logger.info(
        "--- Dataset loaded ---",
        extra={"dataset_id": dataset_id, "rows": len(snapshot["rows"]), "manuscripts": len(snapshot["groups"])},
    )
