"""
tagcore/dates.py

Calendar date keys (``YYYY-MM-DD``) and ISO-8601 timestamp helpers.

Date keys compare correctly as plain strings, which is what the stay
grouping and folio idempotency rely on.
"""
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import List, Optional, Union

_DATE_KEY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_iso_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp; a trailing ``Z`` is accepted.

    Returns:
        The datetime, or None when the text is not a timestamp
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_iso_string(value: datetime) -> str:
    """UTC ``YYYY-MM-DDTHH:MM:SS.sssZ``; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def normalize_iso(value) -> Optional[str]:
    parsed = parse_iso_datetime(value)
    return to_iso_string(parsed) if parsed is not None else None


def to_date_key(value: Union[str, date, datetime, None], tz: Optional[tzinfo] = None) -> str:
    """
    Calendar date of a timestamp in the hotel's zone.

    Naive datetimes are already local wall-clock time and keep their date.
    Aware datetimes are converted to ``tz`` (server local zone when None).

    Returns:
        ``YYYY-MM-DD``, or "" when the value cannot be read
    """
    if isinstance(value, str):
        if _DATE_KEY.match(value.strip()):
            return value.strip()
        value = parse_iso_datetime(value)
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return ""


def parse_date_key(date_key: str) -> Optional[date]:
    match = _DATE_KEY.match(date_key or "")
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def is_date_key(value) -> bool:
    return isinstance(value, str) and parse_date_key(value) is not None


def add_days_to_date_key(date_key: str, days: int) -> str:
    """Shift a date key; invalid keys are returned unchanged."""
    parsed = parse_date_key(date_key)
    if parsed is None:
        return date_key
    return (parsed + timedelta(days=days)).isoformat()


def build_date_range(start_key: str, nights: int) -> List[str]:
    """Consecutive date keys for ``nights`` nights starting at ``start_key``."""
    if parse_date_key(start_key) is None or nights <= 0:
        return []
    return [add_days_to_date_key(start_key, offset) for offset in range(nights)]


def date_key_to_noon(date_key: str) -> Optional[datetime]:
    """Local-noon naive datetime for a date key; noon keeps DST shifts on the same day."""
    parsed = parse_date_key(date_key)
    if parsed is None:
        return None
    return datetime(parsed.year, parsed.month, parsed.day, 12, 0, 0)


def today_date_key(tz: Optional[tzinfo] = None) -> str:
    return datetime.now(tz).date().isoformat()
