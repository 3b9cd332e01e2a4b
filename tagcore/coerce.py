"""
tagcore/coerce.py

Lenient value coercion for persisted tag values.

Every helper here returns None (or the raw input) instead of raising,
because the values come from free-text columns that humans edit.
"""
import math
import re
from typing import Any, Optional
from urllib.parse import quote, unquote

TRUE_WORDS = frozenset({"true", "1", "yes", "y", "on"})
FALSE_WORDS = frozenset({"false", "0", "no", "n", "off"})

# encodeURIComponent leaves these unescaped
_URI_SAFE = "-_.!~*'()"
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def parse_bool(value: Any) -> Optional[bool]:
    """
    Parse a loosely written boolean.

    Args:
        value: bool, number or string such as "yes" / "off"

    Returns:
        True / False, or None when the value is not recognisably boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    return None


def parse_number(value: Any) -> Optional[float]:
    """Parse a finite number from a number or numeric string."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def safe_trim(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def round_money(value: float) -> float:
    """Round half-up to two decimals."""
    return math.floor(value * 100 + 0.5) / 100


def format_number(value: float) -> str:
    """Render a number the short way: 200.0 -> "200", 12.5 -> "12.5"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def encode_value(value: str) -> str:
    """Percent-encode a value so it cannot break the tag grammar."""
    return quote(value, safe=_URI_SAFE)


def decode_value(raw: str) -> str:
    """Percent-decode a value; malformed encodings yield the raw text."""
    if _BAD_ESCAPE.search(raw):
        return raw
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw
