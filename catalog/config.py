# catalog/config.py
import os
import re
from typing import Dict, List, Pattern, Tuple

# --- DATASET CONFIGURATION ---
DATA_DIR: str = os.getenv("CATALOG_DATA_DIR", "data")

# Maps a dataset id to the locations of its rows, merge-range metadata and
# depository abbreviation dictionary. Locations may be local paths or URLs.
DATASETS: Dict[str, Dict[str, str]] = {
    "metadata": {
        "rows": os.path.join(DATA_DIR, "metadata.json"),
        "merges": os.path.join(DATA_DIR, "metadata.merges.json"),
    },
    "flat": {
        "rows": os.path.join(DATA_DIR, "flat_export.json"),
        "merges": os.path.join(DATA_DIR, "flat_export.merges.json"),
    },
}
DEFAULT_DATASET: str = "metadata"
ABBREVIATIONS_LOCATION: str = os.path.join(DATA_DIR, "depositories.json")


# --- HTTP CLIENT ---
DEFAULT_TIMEOUT: float = 10.0
RETRY_ATTEMPTS: int = 3
RETRY_BACKOFF_FACTOR: float = 0.5
MAX_CONCURRENT_FETCHES: int = 4


# --- CACHES ---
SPAN_CACHE_CAPACITY: int = 512


# --- KEYS AND SENTINELS ---
# Joins depository abbreviation and shelf mark; never expected inside either.
KEY_SEPARATOR: str = "||"
EMPTY_VALUE: str = "__EMPTY__"
UNKNOWN_VALUE: str = "Unknown"
VARIANT_SEPARATOR: str = "|"


# --- COLUMN LAYOUT ---
PREFERRED_COLUMNS: List[str] = [
    "Depository", "Shelf mark", "Production Unit", "Leaves/Pages", "Main text",
    "Minor text", "Dating", "Scribe", "Script", "Material", "Object", "Size",
    "Number of lines", "Literature", "Links to Database",
]

# Manuscript-level aggregates: always one manuscript-spanning cell.
ALWAYS_MERGED_COLUMNS: Tuple[str, ...] = ("Links to Database", "Literature")

# Never spanned from merge metadata, only by the heuristic.
HEURISTIC_ONLY_COLUMNS: Tuple[str, ...] = ALWAYS_MERGED_COLUMNS


# --- PRECOMPILED REGEX ---
DATING_RANGE_RE: Pattern[str] = re.compile(r'\b(\d{4})\s*[-–]\s*(\d{4})\b')
DATING_YEAR_RE: Pattern[str] = re.compile(r'\b(\d{4})\b')
DATING_CENTURY_SHORTHAND_RE: Pattern[str] = re.compile(r'\b(\d{1,2})00s\b')
DATING_DECADE_RE: Pattern[str] = re.compile(r'\b(\d{3})0s\b')
DATING_ORDINAL_CENTURY_RE: Pattern[str] = re.compile(
    r'\b(\d{1,2})\s*(?:st|nd|rd|th)\s+cent(?:ury|\.)', re.IGNORECASE
)

LINES_PARENTHETICAL_RE: Pattern[str] = re.compile(r'\([^)]*\)')
LINES_APPROXIMATION_RE: Pattern[str] = re.compile(r'^(?:ca\.|c\.)\s*', re.IGNORECASE)
LINES_RANGE_RE: Pattern[str] = re.compile(r'^(\d+)\s*[-–]\s*(\d+)$')
LINES_SINGLE_RE: Pattern[str] = re.compile(r'^(\d+)$')

ROMAN_NUMERAL_RE: Pattern[str] = re.compile(r'\b([IVXLCDM]+)\b')
