"""
frontdesk/hotel/codecs/room_rate.py

Per-room nightly rate override, stored in the same tag array as the
housekeeping tags:

    RATE:OVERRIDE=350

No override means the room inherits the hotel base rate. Other RATE: tags
(such as the older RATE:CURRENCY / RATE:BASE pair) are kept as they are.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from tagcore.coerce import format_number, parse_number, round_money
from tagcore.tags import TokenSource, patch_fields, rebuild_tokens, split_tokens

PREFIX = "RATE:"
OVERRIDE_KEY = f"{PREFIX}OVERRIDE="


@dataclass
class RoomRateMeta:
    override_nightly_rate: Optional[float] = None


@dataclass
class ParsedRoomRate:
    rate: RoomRateMeta
    notes: List[str] = field(default_factory=list)
    unknown_tags: List[str] = field(default_factory=list)


def parse_room_rate_tags(tags: TokenSource) -> ParsedRoomRate:
    """Read the override; negative or non-numeric values count as absent."""
    override: Optional[float] = None
    notes: List[str] = []
    unknown: List[str] = []

    for item in split_tokens(tags):
        if not item.startswith(PREFIX):
            notes.append(item)
            continue
        if item.startswith(OVERRIDE_KEY):
            amount = parse_number(item[len(OVERRIDE_KEY):])
            if amount is not None and amount >= 0:
                override = round_money(amount)
            continue
        unknown.append(item)

    return ParsedRoomRate(rate=RoomRateMeta(override_nightly_rate=override), notes=notes, unknown_tags=unknown)


def apply_room_rate_patch(tags: TokenSource, patch: Any) -> List[str]:
    """
    Set or clear the override.

    ``override_nightly_rate`` absent keeps the current value, None removes
    the tag, a number is clamped to >= 0 and rounded to cents.
    """
    parsed = parse_room_rate_tags(tags)
    fields = patch_fields(patch)

    if "override_nightly_rate" in fields:
        value = fields["override_nightly_rate"]
        amount = parse_number(value) if value is not None else None
        override = round_money(max(0.0, amount)) if amount is not None else None
    else:
        override = parsed.rate.override_nightly_rate

    managed = [f"{OVERRIDE_KEY}{format_number(override)}"] if override is not None else []
    return rebuild_tokens(parsed.notes, parsed.unknown_tags, managed)


def get_effective_rate(base_rate: float, override: Optional[float]) -> float:
    return override if override is not None else base_rate
