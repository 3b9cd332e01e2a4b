"""
frontdesk/hotel/codecs/hotel_settings.py

Per-hotel configuration embedded in Hotel.description.

The current format is a JSON block between markers, placed after any
human-written description text::

    Family run hotel by the sea.

    [[HOTEL_SETTINGS_JSON]]
    {
      "version": 1,
      "settings": {...},
      "tags": {...}
    }
    [[/HOTEL_SETTINGS_JSON]]

Older descriptions may use other marker pairs, a ``base64:`` payload, or
flat ``KEY=VALUE`` / ``KEY: VALUE`` lines. All of them are read; only the
current format is written. Parsing never raises.
"""
import base64
import binascii
import json
import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tagcore.blocks import BlockMarkers, find_first_block
from tagcore.coerce import parse_bool, parse_number, safe_trim
from tagcore.tags import patch_fields

CURRENT_BLOCK = BlockMarkers("json", "[[HOTEL_SETTINGS_JSON]]", "[[/HOTEL_SETTINGS_JSON]]")

# Priority order; the first format that matches wins
BLOCK_FORMATS: Tuple[BlockMarkers, ...] = (
    CURRENT_BLOCK,
    BlockMarkers("bracket", "[[HOTEL_SETTINGS]]", "[[/HOTEL_SETTINGS]]"),
    BlockMarkers("chevron", "<<<HOTEL_SETTINGS>>>", "<<<END_HOTEL_SETTINGS>>>"),
    BlockMarkers("html_comment", "<!-- HOTEL_SETTINGS_START -->", "<!-- HOTEL_SETTINGS_END -->"),
)

BASE64_PREFIX = "base64:"

LEGACY_LINE = re.compile(r"^\s*(?:[#@]\s*)?([A-Z][A-Z0-9_]{2,})\s*(?:=|:)\s*(.*?)\s*$")
_LINE_BREAK = re.compile(r"\r?\n")

HOURS_BREAKFAST = "HOURS_BREAKFAST"
HOURS_RESTAURANT = "HOURS_RESTAURANT"
HOURS_ROOM_SERVICE = "HOURS_ROOM_SERVICE"

# Tag aliases that feed settings, first match wins
BASE_RATE_TAGS = ("BASE_NIGHTLY_RATE", "BASE_RATE", "BASE_NIGHTLY")
CURRENCY_TAGS = ("CURRENCY", "HOTEL_CURRENCY")
AUTO_POST_TAGS = ("AUTO_POST_ROOM_CHARGES", "AUTOPOST_ROOM_CHARGES", "AUTO_POST_CHARGES")
REQUIRES_PAID_TAGS = ("CHECKOUT_REQUIRES_PAID_FOLIO", "REQUIRES_PAID_FOLIO")
STRING_TAGS = {
    "check_in_time": ("CHECKIN_TIME",),
    "check_out_time": ("CHECKOUT_TIME",),
    "hotel_address": ("HOTEL_ADDRESS",),
    "hotel_phone": ("HOTEL_PHONE",),
    "hotel_email": ("HOTEL_EMAIL",),
    "hotel_website": ("HOTEL_WEBSITE",),
    "vat_number": ("VAT_NUMBER", "VAT"),
}

DEFAULT_CURRENCY = "USD"

_HOURS_VALUE = re.compile(r"^\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}$")
_ALWAYS_OPEN = re.compile(r"^(24/7|24h)$", re.IGNORECASE)


# ====== records ======

@dataclass
class OpeningHours:
    breakfast: str = ""
    restaurant: str = ""
    room_service: str = ""

    def is_empty(self) -> bool:
        return not (self.breakfast or self.restaurant or self.room_service)


@dataclass
class HotelSettings:
    base_nightly_rate: float = 0.0          # 0 means unset
    currency: str = DEFAULT_CURRENCY
    auto_post_room_charges: bool = False
    checkout_requires_paid_folio: bool = True
    check_in_time: str = ""
    check_out_time: str = ""
    hotel_address: str = ""
    hotel_phone: str = ""
    hotel_email: str = ""
    hotel_website: str = ""
    vat_number: str = ""
    opening_hours: OpeningHours = field(default_factory=OpeningHours)


@dataclass
class ParsedHotelSettings:
    base_text: str
    settings: HotelSettings
    tags: Dict[str, str]
    raw_block: Optional[Any] = None  # decoded JSON, kept for migration/debugging


DEFAULT_SETTINGS = HotelSettings()

# python attribute -> JSON key, in the order the block is written
JSON_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("base_nightly_rate", "baseNightlyRate"),
    ("currency", "currency"),
    ("auto_post_room_charges", "autoPostRoomCharges"),
    ("checkout_requires_paid_folio", "checkoutRequiresPaidFolio"),
    ("check_in_time", "checkInTime"),
    ("check_out_time", "checkOutTime"),
    ("hotel_address", "hotelAddress"),
    ("hotel_phone", "hotelPhone"),
    ("hotel_email", "hotelEmail"),
    ("hotel_website", "hotelWebsite"),
    ("vat_number", "vatNumber"),
)
HOURS_JSON_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("breakfast", "breakfast"),
    ("restaurant", "restaurant"),
    ("room_service", "roomService"),
)
_TEXT_FIELDS = (
    "check_in_time", "check_out_time", "hotel_address", "hotel_phone",
    "hotel_email", "hotel_website", "vat_number",
)
_JSON_KEYS = dict(JSON_FIELDS)


# ====== normalization ======

def normalize_currency(value: Any, fallback: str = DEFAULT_CURRENCY) -> str:
    """Uppercase letters only, 3-5 of them, otherwise the fallback."""
    cleaned = re.sub(r"[^A-Z]", "", safe_trim(value).upper())
    if 3 <= len(cleaned) <= 5:
        return cleaned
    return fallback


def _lookup(raw: Mapping[str, Any], attr: str, json_key: str) -> Any:
    if attr in raw:
        return raw[attr]
    return raw.get(json_key)


def normalize_settings(raw: Optional[Mapping[str, Any]], fallback: HotelSettings) -> HotelSettings:
    """
    Normalize loosely typed settings field by field.

    Each field that is missing or unreadable takes the value from
    ``fallback``. Keys may be snake_case or the camelCase used in the JSON
    block. Amounts are clamped to >= 0.
    """
    raw = raw if isinstance(raw, Mapping) else {}

    rate = parse_number(_lookup(raw, "base_nightly_rate", "baseNightlyRate"))
    auto_post = parse_bool(_lookup(raw, "auto_post_room_charges", "autoPostRoomCharges"))
    requires_paid = parse_bool(_lookup(raw, "checkout_requires_paid_folio", "checkoutRequiresPaidFolio"))

    texts = {
        attr: safe_trim(_lookup(raw, attr, _JSON_KEYS[attr])) or getattr(fallback, attr)
        for attr in _TEXT_FIELDS
    }

    hours_raw = _lookup(raw, "opening_hours", "openingHours")
    if isinstance(hours_raw, OpeningHours):
        hours_raw = asdict(hours_raw)
    if not isinstance(hours_raw, Mapping):
        hours_raw = {}
    hours = OpeningHours(**{
        attr: safe_trim(_lookup(hours_raw, attr, json_key)) or getattr(fallback.opening_hours, attr)
        for attr, json_key in HOURS_JSON_FIELDS
    })

    return HotelSettings(
        base_nightly_rate=max(0.0, rate) if rate is not None else fallback.base_nightly_rate,
        currency=normalize_currency(raw.get("currency"), fallback.currency),
        auto_post_room_charges=auto_post if auto_post is not None else fallback.auto_post_room_charges,
        checkout_requires_paid_folio=(
            requires_paid if requires_paid is not None else fallback.checkout_requires_paid_folio
        ),
        opening_hours=hours,
        **texts,
    )


def tags_to_opening_hours(tags: Mapping[str, str]) -> OpeningHours:
    return OpeningHours(
        breakfast=tags.get(HOURS_BREAKFAST, ""),
        restaurant=tags.get(HOURS_RESTAURANT, ""),
        room_service=tags.get(HOURS_ROOM_SERVICE, ""),
    )


def merge_tags(base: Mapping[str, str], patch: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Overlay a tag patch; None or blank values delete the key."""
    merged = dict(base)
    for key, value in (patch or {}).items():
        key = str(key if key is not None else "").strip()
        if not key:
            continue
        text = str(value).strip() if value is not None else ""
        if text:
            merged[key] = text
        else:
            merged.pop(key, None)
    return merged


def is_valid_hours(value: Optional[str]) -> bool:
    """
    Caller-side check for an opening-hours value.

    Accepts blank, ``24/7``, ``24h`` or comma separated ``HH:MM-HH:MM`` ranges.
    """
    text = (value or "").strip()
    if not text or _ALWAYS_OPEN.match(text):
        return True
    ranges = [part.strip() for part in text.split(",") if part.strip()]
    return all(_HOURS_VALUE.match(part) for part in ranges)


# ====== parsing ======

def _decode_block_payload(payload: str) -> Optional[Any]:
    text = payload.strip()
    if not text:
        return None
    try:
        if text.startswith(BASE64_PREFIX):
            text = base64.b64decode(text[len(BASE64_PREFIX):].strip(), validate=True).decode("utf-8")
        return json.loads(text)
    except (ValueError, RecursionError, binascii.Error):
        return None


def parse_legacy_lines(text: str) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for line in _LINE_BREAK.split(text):
        match = LEGACY_LINE.match(line)
        if not match:
            continue
        value = match.group(2).strip()
        if value:
            tags[match.group(1)] = value
    return tags


def _first_tag(tags: Mapping[str, str], keys, reader):
    for key in keys:
        value = reader(tags.get(key))
        if value is not None:
            return value
    return None


def _settings_from_tags(tags: Mapping[str, str]) -> Dict[str, Any]:
    derived: Dict[str, Any] = {
        "base_nightly_rate": _first_tag(tags, BASE_RATE_TAGS, parse_number),
        "currency": _first_tag(tags, CURRENCY_TAGS, lambda v: v if v else None),
        "auto_post_room_charges": _first_tag(tags, AUTO_POST_TAGS, parse_bool),
        "checkout_requires_paid_folio": _first_tag(tags, REQUIRES_PAID_TAGS, parse_bool),
        "opening_hours": tags_to_opening_hours(tags),
    }
    for attr, keys in STRING_TAGS.items():
        derived[attr] = _first_tag(tags, keys, lambda v: v if v else None)
    return derived


def parse_hotel_settings(description: Optional[str]) -> ParsedHotelSettings:
    """
    Read settings out of a hotel description.

    Precedence: defaults, then settings derived from tags (legacy lines
    overlaid by JSON tags), then the JSON ``settings`` object. Opening hours
    always come from the HOURS_* tags.
    """
    text = description if isinstance(description, str) else ""

    block = find_first_block(text, BLOCK_FORMATS)
    base_text = (block.splice_out(text) if block else text).strip()

    legacy_tags = parse_legacy_lines(base_text)

    raw = _decode_block_payload(block.inner) if block else None
    json_tags: Dict[str, str] = {}
    json_settings: Optional[Mapping[str, Any]] = None
    if isinstance(raw, dict):
        raw_tags = raw.get("tags")
        if isinstance(raw_tags, dict):
            for key, value in raw_tags.items():
                key = str(key).strip()
                value = safe_trim(value)
                if key and value:
                    json_tags[key] = value
        if isinstance(raw.get("settings"), dict):
            json_settings = raw["settings"]

    tags = {**legacy_tags, **json_tags}

    merged = normalize_settings(_settings_from_tags(tags), DEFAULT_SETTINGS)
    settings = normalize_settings(json_settings, merged)
    settings.opening_hours = tags_to_opening_hours(tags)
    settings.currency = normalize_currency(settings.currency, DEFAULT_CURRENCY)

    return ParsedHotelSettings(base_text=base_text, settings=settings, tags=tags, raw_block=raw)


# ====== serialization ======

def _json_number(value: float):
    return int(value) if float(value).is_integer() else value


def settings_to_json(settings: HotelSettings) -> Dict[str, Any]:
    """camelCase dict in the fixed block order."""
    out: Dict[str, Any] = {}
    for attr, json_key in JSON_FIELDS:
        out[json_key] = getattr(settings, attr)
    out["baseNightlyRate"] = _json_number(settings.base_nightly_rate)
    out["openingHours"] = {
        json_key: getattr(settings.opening_hours, attr) for attr, json_key in HOURS_JSON_FIELDS
    }
    return out


def build_settings_block(settings: HotelSettings, tags: Mapping[str, str]) -> str:
    payload = {"version": 1, "settings": settings_to_json(settings), "tags": dict(tags)}
    return CURRENT_BLOCK.wrap(json.dumps(payload, indent=2, ensure_ascii=False))


def _join(base_text: str, block: str) -> str:
    prefix = base_text.strip()
    return f"{prefix}\n\n{block}" if prefix else block


def serialize_hotel_settings(
    description: Optional[str] = None,
    settings: Optional[Mapping[str, Any]] = None,
    tags: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Write settings back, always in the current block format.

    Args:
        description: existing description; its free text is kept
        settings: partial settings layered over the parsed ones
        tags: extra tags; blank values are ignored

    Returns:
        New description text
    """
    parsed = parse_hotel_settings(description) if description is not None else None
    base_settings = parsed.settings if parsed else DEFAULT_SETTINGS

    next_settings = normalize_settings(settings or {}, base_settings)
    next_tags = dict(parsed.tags) if parsed else {}
    for key, value in (tags or {}).items():
        key = str(key).strip()
        value = safe_trim(value)
        if key and value:
            next_tags[key] = value

    block = build_settings_block(next_settings, next_tags)
    if parsed is None:
        return block
    return _join(parsed.base_text, block)


def _address_from_parts(fields: Mapping[str, Any]) -> str:
    lines: List[str] = []
    for key in ("address_line1", "address_line2"):
        part = safe_trim(fields.get(key) or "")
        if part:
            lines.append(part)
    city_line = " ".join(
        part for part in (safe_trim(fields.get(k) or "") for k in ("city", "state", "zip")) if part
    )
    if city_line:
        lines.append(city_line)
    country = safe_trim(fields.get("country") or "")
    if country:
        lines.append(country)
    return "\n".join(lines)


_ADDRESS_PARTS = ("address_line1", "address_line2", "city", "state", "zip", "country")
_HOURS_PATCH_TAGS = {
    "breakfast": HOURS_BREAKFAST,
    "restaurant": HOURS_RESTAURANT,
    "room_service": HOURS_ROOM_SERVICE,
}


def apply_hotel_settings_patch(description: Optional[str], patch: Any) -> str:
    """
    Layer one patch over the parsed description and serialize.

    Order: generic tags, opening hours (HOURS_* tags), address parts joined
    into ``hotel_address``, then direct setting fields. Keys not supplied
    are left alone.
    """
    parsed = parse_hotel_settings(description)
    fields = patch_fields(patch)
    settings = replace(parsed.settings)
    tags = dict(parsed.tags)

    if fields.get("tags") is not None:
        tags = merge_tags(tags, fields["tags"])

    hours_patch = fields.get("opening_hours")
    if hours_patch is not None:
        hours_fields = patch_fields(hours_patch)
        tags = merge_tags(tags, {
            _HOURS_PATCH_TAGS[attr]: value for attr, value in hours_fields.items() if attr in _HOURS_PATCH_TAGS
        })

    if any(fields.get(part) is not None for part in _ADDRESS_PARTS):
        settings.hotel_address = _address_from_parts(fields)

    if "base_nightly_rate" in fields:
        rate = parse_number(fields["base_nightly_rate"])
        settings.base_nightly_rate = max(0.0, rate) if rate is not None else 0.0

    if "currency" in fields:
        # blank keeps the previous currency
        settings.currency = normalize_currency(fields["currency"], settings.currency or DEFAULT_CURRENCY)

    for attr in ("auto_post_room_charges", "checkout_requires_paid_folio"):
        if attr in fields:
            setattr(settings, attr, bool(fields[attr]))

    for attr in _TEXT_FIELDS:
        if attr in fields:
            setattr(settings, attr, safe_trim(fields[attr] or ""))

    settings.opening_hours = tags_to_opening_hours(tags)
    settings.currency = normalize_currency(settings.currency, DEFAULT_CURRENCY)

    return _join(parsed.base_text, build_settings_block(settings, tags))


def summarize_opening_hours(value: Any = None) -> str:
    """
    One-line opening hours for display.

    Accepts a description string, an OpeningHours, a mapping of hours
    (breakfast / restaurant / room_service) or a tag mapping.
    """
    if not value:
        return "—"

    if isinstance(value, str):
        hours = parse_hotel_settings(value).settings.opening_hours
    elif isinstance(value, OpeningHours):
        hours = value
    elif isinstance(value, Mapping) and any(
        key in value for key in ("breakfast", "restaurant", "room_service", "roomService")
    ):
        hours = OpeningHours(
            breakfast=safe_trim(value.get("breakfast")),
            restaurant=safe_trim(value.get("restaurant")),
            room_service=safe_trim(_lookup(value, "room_service", "roomService")),
        )
    elif isinstance(value, Mapping):
        hours = tags_to_opening_hours(value)
    else:
        return "—"

    parts = []
    if hours.breakfast:
        parts.append(f"Breakfast: {hours.breakfast}")
    if hours.restaurant:
        parts.append(f"Restaurant: {hours.restaurant}")
    if hours.room_service:
        parts.append(f"Room service: {hours.room_service}")
    return " • ".join(parts) if parts else "—"
