"""
frontdesk/hotel/codecs/housekeeping.py

Housekeeping state stored in a room's tag array (Room.special_requests).

Current format (key=value):
    HK:STATUS=CLEAN|DIRTY|MAINTENANCE|OUT_OF_ORDER
    HK:IN_LIST=true
    HK:LAST_CLEANED_AT=<ISO-8601 UTC>
    HK:REASON=<percent-encoded text>

Legacy bare tags (read, never written):
    HK:CLEAN | HK:DIRTY | HK:MAINTENANCE | HK:OUT_OF_ORDER

Notes and unknown HK: tags survive every patch.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from tagcore.coerce import decode_value, encode_value
from tagcore.dates import normalize_iso, parse_iso_datetime
from tagcore.tags import TokenSource, patch_fields, rebuild_tokens, split_tokens

PREFIX = "HK:"
STATUS_KEY = f"{PREFIX}STATUS="
IN_LIST_KEY = f"{PREFIX}IN_LIST="
LAST_CLEANED_KEY = f"{PREFIX}LAST_CLEANED_AT="
REASON_KEY = f"{PREFIX}REASON="

_IN_LIST_TRUE = {"true", "1", "yes", "y"}


class HKStatus(str, Enum):
    CLEAN = "CLEAN"
    DIRTY = "DIRTY"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_ORDER = "OUT_OF_ORDER"


class DerivedRoomStatus(str, Enum):
    """Status shown on the room board"""
    OCCUPIED = "OCCUPIED"
    VACANT_CLEAN = "VACANT_CLEAN"
    VACANT_DIRTY = "VACANT_DIRTY"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_ORDER = "OUT_OF_ORDER"


LEGACY_STATUS_TAGS = {f"{PREFIX}{status.value}": status for status in HKStatus}


def to_hk_status(value: Any) -> Optional[HKStatus]:
    if isinstance(value, HKStatus):
        return value
    if isinstance(value, str):
        try:
            return HKStatus(value.strip().upper())
        except ValueError:
            return None
    return None


@dataclass
class HousekeepingMeta:
    status: HKStatus = HKStatus.CLEAN
    in_cleaning_list: bool = False
    last_cleaned_at: Optional[str] = None  # ISO-8601 UTC
    reason: Optional[str] = None


@dataclass
class ParsedHousekeeping:
    hk: HousekeepingMeta
    notes: List[str] = field(default_factory=list)
    unknown_tags: List[str] = field(default_factory=list)


def parse_housekeeping_tags(tags: TokenSource) -> ParsedHousekeeping:
    """
    Split a room tag array into housekeeping state, notes and unknown HK: tags.

    Later tags win when a key repeats. Unreadable values fall back to the
    defaults (status CLEAN, not in list, no timestamp, no reason).
    """
    status: Optional[HKStatus] = None
    in_cleaning_list = False
    last_cleaned_at: Optional[str] = None
    reason: Optional[str] = None

    notes: List[str] = []
    unknown: List[str] = []

    for item in split_tokens(tags):
        if not item.startswith(PREFIX):
            notes.append(item)
            continue

        if item in LEGACY_STATUS_TAGS:
            status = LEGACY_STATUS_TAGS[item]
            continue

        if item.startswith(STATUS_KEY):
            parsed = to_hk_status(item[len(STATUS_KEY):])
            if parsed is not None:
                status = parsed
            continue

        if item.startswith(IN_LIST_KEY):
            in_cleaning_list = item[len(IN_LIST_KEY):].strip().lower() in _IN_LIST_TRUE
            continue

        if item.startswith(LAST_CLEANED_KEY):
            last_cleaned_at = normalize_iso(item[len(LAST_CLEANED_KEY):].strip())
            continue

        if item.startswith(REASON_KEY):
            reason = decode_value(item[len(REASON_KEY):])
            continue

        # newer schema versions
        unknown.append(item)

    hk = HousekeepingMeta(
        status=status or HKStatus.CLEAN,
        in_cleaning_list=in_cleaning_list,
        last_cleaned_at=last_cleaned_at,
        reason=reason,
    )
    return ParsedHousekeeping(hk=hk, notes=notes, unknown_tags=unknown)


def _patched_timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    return normalize_iso(value)


def serialize_housekeeping(hk: HousekeepingMeta) -> List[str]:
    """Canonical HK: tags for a record, in fixed order."""
    out = [f"{STATUS_KEY}{hk.status.value}"]
    if hk.in_cleaning_list:
        out.append(f"{IN_LIST_KEY}true")
    if hk.last_cleaned_at:
        out.append(f"{LAST_CLEANED_KEY}{hk.last_cleaned_at}")
    if hk.reason and hk.reason.strip():
        out.append(f"{REASON_KEY}{encode_value(hk.reason.strip())}")
    return out


def apply_housekeeping_patch(tags: TokenSource, patch: Any) -> List[str]:
    """
    Apply a housekeeping patch to a room tag array.

    Args:
        tags: current tag array
        patch: mapping or HousekeepingPatch; keys not supplied keep their
            current value, ``last_cleaned_at=None`` / ``reason=None`` clear

    Returns:
        New tag array: notes, unknown HK: tags, then canonical HK: tags
    """
    parsed = parse_housekeeping_tags(tags)
    fields = patch_fields(patch)
    current = parsed.hk

    status = to_hk_status(fields.get("status")) or current.status
    in_list = fields.get("in_cleaning_list")
    last_cleaned_at = (
        _patched_timestamp(fields["last_cleaned_at"]) if "last_cleaned_at" in fields else current.last_cleaned_at
    )
    reason = fields["reason"] if "reason" in fields else current.reason

    next_hk = HousekeepingMeta(
        status=status,
        in_cleaning_list=in_list if isinstance(in_list, bool) else current.in_cleaning_list,
        last_cleaned_at=last_cleaned_at,
        reason=reason if isinstance(reason, str) else None,
    )
    return rebuild_tokens(parsed.notes, parsed.unknown_tags, serialize_housekeeping(next_hk))


def days_since(iso: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days elapsed since a timestamp; None when unset or unparseable."""
    if not iso:
        return None
    moment = parse_iso_datetime(iso)
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int((now - moment).total_seconds() // 86400)


def derive_room_status(is_occupied: bool, hk: HousekeepingMeta) -> DerivedRoomStatus:
    """Occupancy wins; otherwise the housekeeping status decides."""
    if is_occupied:
        return DerivedRoomStatus.OCCUPIED
    if hk.status == HKStatus.OUT_OF_ORDER:
        return DerivedRoomStatus.OUT_OF_ORDER
    if hk.status == HKStatus.MAINTENANCE:
        return DerivedRoomStatus.MAINTENANCE
    if hk.status == HKStatus.DIRTY:
        return DerivedRoomStatus.VACANT_DIRTY
    return DerivedRoomStatus.VACANT_CLEAN
