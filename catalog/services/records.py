"""
Typed row and manuscript records.

Rows come out of ingestion as open string mappings. Known spreadsheet
columns are kept in ``values``; anything dataset-specific lands in
``extras`` so the engines can work against named columns while still
carrying extra data through to the renderer.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from catalog.config import KEY_SEPARATOR, PREFERRED_COLUMNS


class Column(str, Enum):
    DEPOSITORY = "Depository"
    SHELF_MARK = "Shelf mark"
    PRODUCTION_UNIT = "Production Unit"
    LEAVES = "Leaves/Pages"
    MAIN_TEXT = "Main text"
    MINOR_TEXT = "Minor text"
    DATING = "Dating"
    SCRIBE = "Scribe"
    SCRIPT = "Script"
    MATERIAL = "Material"
    OBJECT = "Object"
    SIZE = "Size"
    LINES = "Number of lines"
    BIBLIOGRAPHY = "Literature"
    LINKS = "Links to Database"


KNOWN_COLUMNS = frozenset(c.value for c in Column)


@dataclass
class RowRecord:
    values: Dict[str, str]
    extras: Dict[str, str] = field(default_factory=dict)
    manuscript_key: str = ""
    source_id: str = ""
    source_row_index: int = 0
    derived: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], manuscript_key: str,
                     source_id: str, source_row_index: int) -> "RowRecord":
        values: Dict[str, str] = {}
        extras: Dict[str, str] = {}
        for name, value in raw.items():
            text = "" if value is None else str(value)
            if name in KNOWN_COLUMNS:
                values[name] = text
            else:
                extras[name] = text
        return cls(values=values, extras=extras, manuscript_key=manuscript_key,
                   source_id=source_id, source_row_index=source_row_index)

    def get(self, column: str, default: str = "") -> str:
        if isinstance(column, Column):
            column = column.value
        if column in self.values:
            return self.values[column]
        return self.extras.get(column, default)

    def columns(self) -> List[str]:
        known = [c for c in PREFERRED_COLUMNS if c in self.values]
        known += sorted(c for c in self.values if c not in PREFERRED_COLUMNS)
        return known + sorted(self.extras)

    def items(self) -> List[Tuple[str, str]]:
        return [(c, self.get(c)) for c in self.columns()]

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())


@dataclass
class ManuscriptGroup:
    key: str
    rows: List[RowRecord] = field(default_factory=list)

    @property
    def depository(self) -> str:
        return self.key.split(KEY_SEPARATOR, 1)[0]

    @property
    def shelf_mark(self) -> str:
        parts = self.key.split(KEY_SEPARATOR, 1)
        return parts[1] if len(parts) > 1 else ""

    @property
    def is_degenerate(self) -> bool:
        return not self.depository.strip() and not self.shelf_mark.strip()

    def first(self, column: str) -> Optional[str]:
        for row in self.rows:
            value = row.get(column).strip()
            if value:
                return value
        return None


class Degradation(str, Enum):
    """Why an engine fell back to a best-effort result."""
    NO_MERGE_METADATA = "no_merge_metadata"
    RANGE_OUT_OF_BOUNDS = "range_out_of_bounds"
    UNRESOLVABLE_COLUMN = "unresolvable_column"
    UNPARSEABLE_VALUE = "unparseable_value"
    OVERLAPPING_RANGE = "overlapping_range"
