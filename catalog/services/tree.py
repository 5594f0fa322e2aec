from typing import Any, Dict, List, Optional, Sequence

from catalog.services.common import natural_key
from catalog.services.records import Column, ManuscriptGroup, RowRecord
from catalog.textual_manipulation import normalize_cell


def _first(rows: Sequence[RowRecord], column: Column) -> Optional[str]:
    for row in rows:
        value = normalize_cell(row.get(column))
        if value:
            return value
    return None

def _content_label(row: RowRecord) -> str:
    leaves = normalize_cell(row.get(Column.LEAVES))
    text = normalize_cell(row.get(Column.MAIN_TEXT)) or normalize_cell(row.get(Column.MINOR_TEXT)) or "Untitled"
    dating = normalize_cell(row.get(Column.DATING))
    return " — ".join(part for part in (leaves, text, dating) if part)

def _by_text(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(nodes, key=lambda n: natural_key(n["text"]))

def build_tree(groups: Sequence[ManuscriptGroup]) -> List[Dict[str, Any]]:
    """
    Manuscript -> production unit -> content tree for the browse view.
    Units are the distinct Production Unit values of a manuscript in
    first-seen order; siblings are sorted naturally by label.
    """
    tree: List[Dict[str, Any]] = []
    for m_index, group in enumerate(groups):
        units: Dict[str, List[RowRecord]] = {}
        for row in group.rows:
            units.setdefault(normalize_cell(row.get(Column.PRODUCTION_UNIT)), []).append(row)

        children = []
        for pu_index, (unit, unit_rows) in enumerate(units.items()):
            unit_id = f"m-{m_index}-pu-{pu_index}"
            contents = [
                {
                    "id": f"{unit_id}-c-{c_index}",
                    "text": _content_label(row),
                    "icon": "file",
                    "data": row.to_dict(),
                }
                for c_index, row in enumerate(unit_rows)
            ]
            children.append({
                "id": unit_id,
                "text": f"Production Unit {unit} ({_first(unit_rows, Column.MATERIAL) or 'Unknown'})",
                "data": {"Production Unit": unit, "Material": _first(unit_rows, Column.MATERIAL) or ""},
                "children": _by_text(contents),
            })

        tree.append({
            "id": f"m-{m_index}",
            "key": group.key,
            "text": f"{group.shelf_mark} ({group.first(Column.OBJECT) or 'Unknown'})",
            "data": {"Depository": group.depository, "Shelf mark": group.shelf_mark},
            "children": _by_text(children),
        })
    return _by_text(tree)
