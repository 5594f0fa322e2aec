"""
Value parsers feeding the facet engine.

Every parser here is total: text that cannot be interpreted yields None (or
keeps the cleaned text as an opaque option) instead of raising.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from catalog.config import (
    DATING_CENTURY_SHORTHAND_RE,
    DATING_DECADE_RE,
    DATING_ORDINAL_CENTURY_RE,
    DATING_RANGE_RE,
    DATING_YEAR_RE,
    EMPTY_VALUE,
    LINES_APPROXIMATION_RE,
    LINES_PARENTHETICAL_RE,
    LINES_RANGE_RE,
    LINES_SINGLE_RE,
    ROMAN_NUMERAL_RE,
    UNKNOWN_VALUE,
    VARIANT_SEPARATOR,
)
from catalog.services.common import is_roman_numeral
from catalog.textual_manipulation import normalize_cell, normalize_token


@dataclass(frozen=True)
class ParsedRange:
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    # Cleaned text kept when no number could be read, e.g. "many".
    text: Optional[str] = None

    @property
    def is_numeric(self) -> bool:
        return self.minimum is not None

    @property
    def label(self) -> str:
        if not self.is_numeric:
            return self.text or ""
        if self.minimum == self.maximum:
            return str(self.minimum)
        return f"{self.minimum}-{self.maximum}"


def parse_dating_year(text: Optional[str]) -> Optional[int]:
    """
    Reads a representative year from a free-text dating.

    "1350-1375" -> 1350, "c. 1420" -> 1420, "1200s" -> 1250,
    "1450s" -> 1455, "14th century" -> 1350, anything else -> None.
    """
    if not text:
        return None
    match = DATING_RANGE_RE.search(text)
    if match:
        return int(match.group(1))
    match = DATING_YEAR_RE.search(text)
    if match:
        return int(match.group(1))
    match = DATING_CENTURY_SHORTHAND_RE.search(text)
    if match:
        return int(match.group(1)) * 100 + 50
    match = DATING_DECADE_RE.search(text)
    if match:
        return int(match.group(1)) * 10 + 5
    match = DATING_ORDINAL_CENTURY_RE.search(text)
    if match:
        century = int(match.group(1))
        if century > 0:
            return (century - 1) * 100 + 50
    return None

def parse_line_range(text: Optional[str]) -> Optional[ParsedRange]:
    """
    Parses a line count such as "ca. 20-25 (f. 3r)" or "22". Returns None
    for an empty cell and a text-only ParsedRange when no number is found.
    """
    if not text:
        return None
    cleaned = LINES_PARENTHETICAL_RE.sub("", text).strip()
    cleaned = LINES_APPROXIMATION_RE.sub("", cleaned).strip()
    if not cleaned:
        return None

    match = LINES_RANGE_RE.match(cleaned)
    if match:
        low, high = sorted((int(match.group(1)), int(match.group(2))))
        return ParsedRange(minimum=low, maximum=high)
    match = LINES_SINGLE_RE.match(cleaned)
    if match:
        value = int(match.group(1))
        return ParsedRange(minimum=value, maximum=value)
    return ParsedRange(text=cleaned)

def split_tokens(text: Optional[str]) -> List[str]:
    """
    Splits a semicolon (or newline) delimited list into trimmed tokens,
    dropping duplicates under case, whitespace and diacritics folding.
    The first-seen spelling is kept.
    """
    if not text:
        return []
    tokens: List[str] = []
    seen = set()
    for part in text.replace("\r\n", ";").replace("\n", ";").split(";"):
        token = part.strip()
        key = normalize_token(token)
        if not key or key in seen:
            continue
        seen.add(key)
        tokens.append(token)
    return tokens

def production_unit_tokens(text: Optional[str]) -> List[str]:
    """
    Unit labels in a Production Unit cell: Roman numerals found in each
    segment, or the whole segment when it holds none.
    """
    tokens: List[str] = []
    seen = set()
    for segment in split_tokens(text):
        found = [m for m in ROMAN_NUMERAL_RE.findall(segment) if is_roman_numeral(m)]
        for token in found or [segment]:
            key = normalize_token(token)
            if key not in seen:
                seen.add(key)
                tokens.append(token)
    return tokens

def unit_count_value(cells: Iterable[Optional[str]]) -> str:
    """
    Facet value for the number of distinct production units across a
    manuscript. A literal "Unknown" cell anywhere wins over the count.
    """
    units = set()
    for cell in cells:
        cleaned = normalize_cell(cell)
        if cleaned.lower() == UNKNOWN_VALUE.lower():
            return UNKNOWN_VALUE
        units.update(normalize_token(t) for t in production_unit_tokens(cleaned))
    if not units:
        return EMPTY_VALUE
    return str(len(units))

def split_main_text(text: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Splits "Group (variant)" into its group and variant. The group is the
    text before the first parenthesis; the variant is the parenthesized
    suffix, if any.
    """
    cleaned = normalize_cell(text)
    if not cleaned:
        return EMPTY_VALUE, None
    head, sep, tail = cleaned.partition("(")
    group = head.strip() or EMPTY_VALUE
    if not sep:
        return group, None
    variant = tail.rsplit(")", 1)[0].strip() if ")" in tail else tail.strip()
    return group, variant or None

def variant_key(group: str, variant: str) -> str:
    return f"{group}{VARIANT_SEPARATOR}{variant}"

def categorical_value(text: Optional[str]) -> str:
    """Exact-match facet value; blank cells map to the EMPTY sentinel."""
    cleaned = normalize_cell(text)
    return cleaned if cleaned else EMPTY_VALUE

def token_display_map(token_lists: Iterable[List[str]]) -> Dict[str, str]:
    """Folded token -> first-seen spelling across a whole collection."""
    display: Dict[str, str] = {}
    for tokens in token_lists:
        for token in tokens:
            display.setdefault(normalize_token(token), token)
    return display
