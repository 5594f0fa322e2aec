from typing import Dict, Any, List, Optional, Sequence

from catalog.models import Mode, SearchQuery
from catalog.store import store
from catalog.services.facets import compute_counts, filter_records
from catalog.services.records import ManuscriptGroup, RowRecord
from catalog.services.span_plan import plan_spans

NO_DATA_MESSAGE = "No data available for this record"


def _require_ready() -> None:
    if not store.is_ready:
        raise RuntimeError("Data is still being loaded")

# --- PROJECTION

def _project_row(row: RowRecord) -> Dict[str, Any]:
    item = row.to_dict()
    item["manuscript_key"] = row.manuscript_key
    return item

def _project_group(group: ManuscriptGroup) -> Dict[str, Any]:
    return {
        "key": group.key,
        "depository": group.depository,
        "shelf_mark": group.shelf_mark,
        "rows": [row.to_dict() for row in group.rows],
    }

# --- SEARCH

def run_search(query: SearchQuery) -> Dict[str, Any]:
    """
    Filters rows or manuscripts by the facet selections and free-text query,
    and returns the page requested together with live facet counts.
    """
    _require_ready()

    if query.mode == Mode.MANUSCRIPT:
        universe: Sequence[Any] = store.cache.get("groups", [])
        project = _project_group
    else:
        universe = store.cache.get("rows", [])
        project = _project_row

    selections = query.facet_selections()
    matches = filter_records(universe, selections, query.query)

    counts: Dict[str, Any] = {}
    if query.counts:
        counts = {
            name: facet_counts.to_dict()
            for name, facet_counts in compute_counts(universe, selections, query.query).items()
        }

    page = matches[query.offset:query.offset + query.limit]
    return {
        "count": len(matches),
        "counts": counts,
        "results": [project(record) for record in page],
    }

# --- DETAILS LOOKUP

def _group_for(key: str) -> ManuscriptGroup:
    group = store.cache.get("groups_by_key", {}).get(key)
    if group is None or group.is_degenerate:
        raise KeyError(NO_DATA_MESSAGE)
    return group

def get_manuscript_details(key: str) -> Dict[str, Any]:
    """
    Retrieves one manuscript's rows from the cache.
    Raises KeyError for unknown keys and for rows without a key.
    """
    _require_ready()
    group = _group_for(key)
    details = _project_group(group)
    details["columns"] = store.cache.get("columns", [])
    return details

def get_span_plan(key: str, visible_columns: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Merge-aware rendering plan of one manuscript for the given visible
    columns. Plans are cached per snapshot.
    """
    _require_ready()
    group = _group_for(key)
    visible = list(visible_columns) if visible_columns else list(store.cache.get("columns", []))

    cache_key = (key, tuple(visible))
    cached = store.span_cache.get(cache_key)
    if cached is not None:
        return cached

    full_columns = store.cache.get("full_columns", {}).get(group.rows[0].source_id, [])
    plan = plan_spans(group, full_columns, visible, store.cache.get("merge_ranges"))
    payload = plan.to_dict()
    store.span_cache.put(cache_key, payload)
    return payload

def get_tree() -> List[Dict[str, Any]]:
    _require_ready()
    return store.cache.get("tree", [])
