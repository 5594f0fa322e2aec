# catalog/textual_manipulation.py

import re
import unicodedata

_WHITESPACE_RE = re.compile(r'\s+')

def strip_diacritics(text: str) -> str:
    """
    Removes diacritics from a string, supporting a wide range of languages
    by normalizing Unicode characters.
    """
    if not isinstance(text, str):
        return text
    # Decompose the string into base characters and combining marks (e.g., accents)
    nfkd_form = unicodedata.normalize('NFKD', text)
    # Filter out the combining marks, leaving only the base characters
    return "".join([c for c in nfkd_form if not unicodedata.combining(c)])

def normalize_cell(value) -> str:
    """
    Normalizes a raw cell for equality checks: trims whitespace and treats a
    lone "." (a spreadsheet placeholder) as empty.
    """
    if value is None:
        return ""
    text = str(value).strip()
    if text == ".":
        return ""
    return text

def normalize_token(text: str) -> str:
    """
    Comparison key for list tokens: case, whitespace and diacritics
    insensitive.
    """
    if not text:
        return ""
    collapsed = _WHITESPACE_RE.sub(" ", text.strip())
    return strip_diacritics(collapsed).casefold()
