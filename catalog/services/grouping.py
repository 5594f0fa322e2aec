from typing import Dict, Iterable, List, Mapping, Optional

from catalog.config import KEY_SEPARATOR
from catalog.services.common import natural_key
from catalog.services.records import ManuscriptGroup, RowRecord


def manuscript_key(depository: str, shelf_mark: str,
                   abbreviations: Optional[Mapping[str, str]] = None) -> str:
    """
    Composes the manuscript key from the depository abbreviation and the
    shelf mark. Full depository names are mapped to their abbreviation when
    a dictionary is available.
    """
    depository = (depository or "").strip()
    if abbreviations:
        depository = abbreviations.get(depository, depository)
    return f"{depository}{KEY_SEPARATOR}{(shelf_mark or '').strip()}"

def group_rows(rows: Iterable[RowRecord]) -> List[ManuscriptGroup]:
    """
    Groups rows by manuscript key. A key's first occurrence fixes its
    position in the output; rows keep their original order inside a group.
    """
    groups: Dict[str, ManuscriptGroup] = {}
    for row in rows:
        group = groups.get(row.manuscript_key)
        if group is None:
            group = ManuscriptGroup(key=row.manuscript_key)
            groups[row.manuscript_key] = group
        group.rows.append(row)
    return list(groups.values())

def sort_groups(groups: Iterable[ManuscriptGroup]) -> List[ManuscriptGroup]:
    """Display ordering: depository, then shelf mark in natural order."""
    return sorted(groups, key=lambda g: (natural_key(g.depository), natural_key(g.shelf_mark)))
