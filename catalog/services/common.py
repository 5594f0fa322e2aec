import re
from typing import List, Optional, Tuple, Union

_DIGITS_RE = re.compile(r'(\d+)|(\D+)')


def roman_to_int(s: str) -> Optional[int]:
    """Converts a Roman numeral string to an integer."""
    s = s.upper()
    roman_map = {'I': 1, 'V': 5, 'X': 10, 'L': 50, 'C': 100, 'D': 500, 'M': 1000}
    if not s or not all(c in roman_map for c in s):
        return None

    result = 0
    for i in range(len(s)):
        if i > 0 and roman_map[s[i]] > roman_map[s[i-1]]:
            result += roman_map[s[i]] - 2 * roman_map[s[i-1]]
        else:
            result += roman_map[s[i]]
    return result

def natural_key(text: str) -> List[Tuple[int, Union[int, str]]]:
    """
    Sort key comparing digit runs numerically and everything else
    case-insensitively, so "Cod. 2" sorts before "Cod. 10".
    """
    key: List[Tuple[int, Union[int, str]]] = []
    for digits, other in _DIGITS_RE.findall((text or "").strip().lower()):
        if digits:
            key.append((0, int(digits)))
        else:
            key.append((1, other))
    return key

def int_to_roman(value: int) -> str:
    """Canonical Roman numeral of a positive integer."""
    numerals = [
        (1000, 'M'), (900, 'CM'), (500, 'D'), (400, 'CD'), (100, 'C'), (90, 'XC'),
        (50, 'L'), (40, 'XL'), (10, 'X'), (9, 'IX'), (5, 'V'), (4, 'IV'), (1, 'I'),
    ]
    result = []
    for number, symbol in numerals:
        count, value = divmod(value, number)
        result.append(symbol * count)
    return "".join(result)

def is_roman_numeral(s: str) -> bool:
    """True for a well-formed numeral such as "IV"; "IIII" or "VX" are not."""
    value = roman_to_int(s)
    return value is not None and value > 0 and int_to_roman(value) == s.upper()
