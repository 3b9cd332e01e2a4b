"""
frontdesk/hotel/codecs/folio_charges.py

Nightly room charges are ordinary orders whose note carries a
machine-readable marker. The marker is the idempotency key (one charge per
night reservation) and lets revenue reports split room from menu income.

Current marker:
    FD:ROOM_CHARGE|reservationId=<id>|dateKey=YYYY-MM-DD|hotelId=<id>|room=<n>|rate=<amount>|currency=<ccy>

Older marker (still read):
    FOLIO:TYPE=ROOM_CHARGE;RES=<id>;DATE=YYYY-MM-DD;RATE=<amount>;BY=<percent-encoded email>
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set

from tagcore.coerce import decode_value, encode_value, format_number, parse_number
from tagcore.dates import is_date_key

ROOM_CHARGE_PREFIX = "FD:ROOM_CHARGE"

LEGACY_PREFIX = "FOLIO:"
LEGACY_ROOM_CHARGE_TYPE = "ROOM_CHARGE"
LEGACY_ROOM_CHARGE_TAG = f"{LEGACY_PREFIX}TYPE={LEGACY_ROOM_CHARGE_TYPE}"


@dataclass
class RoomChargeMarker:
    reservation_id: str
    date_key: str
    rate: float
    currency: str
    hotel_id: str = ""
    room_number: int = 0

    def to_note(self) -> str:
        return build_room_charge_note(
            reservation_id=self.reservation_id,
            date_key=self.date_key,
            hotel_id=self.hotel_id,
            room_number=self.room_number,
            rate=self.rate,
            currency=self.currency,
        )

    @classmethod
    def from_note(cls, note: Optional[str]) -> Optional["RoomChargeMarker"]:
        """Marker from a note; None unless reservationId and dateKey are present."""
        fields = parse_room_charge_note(note)
        if not fields or not fields.get("reservationId") or not fields.get("dateKey"):
            return None
        room = parse_number(fields.get("room"))
        return cls(
            reservation_id=fields["reservationId"],
            date_key=fields["dateKey"],
            rate=parse_number(fields.get("rate")) or 0.0,
            currency=fields.get("currency", ""),
            hotel_id=fields.get("hotelId", ""),
            room_number=int(room) if room is not None else 0,
        )


@dataclass
class LegacyRoomChargeMeta:
    reservation_id: Optional[str] = None
    date_key: Optional[str] = None
    rate: Optional[float] = None
    posted_by_email: Optional[str] = None


def build_room_charge_note(
    reservation_id: str, date_key: str, hotel_id: str, room_number: int, rate: float, currency: str
) -> str:
    return "|".join([
        ROOM_CHARGE_PREFIX,
        f"reservationId={reservation_id}",
        f"dateKey={date_key}",
        f"hotelId={hotel_id}",
        f"room={room_number}",
        f"rate={format_number(rate)}",
        f"currency={currency}",
    ])


def is_room_charge_note(note: Optional[str]) -> bool:
    return isinstance(note, str) and note.startswith(ROOM_CHARGE_PREFIX)


def parse_room_charge_note(note: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Key/value segments of a room-charge note.

    Returns:
        dict of segments (split on the first ``=``), or None when the note
        does not start with the room-charge prefix
    """
    if not is_room_charge_note(note):
        return None
    fields: Dict[str, str] = {}
    for segment in note.split("|")[1:]:
        key, sep, value = segment.partition("=")
        key = key.strip()
        if sep and key:
            fields[key] = value.strip()
    return fields


def charged_reservation_ids(notes: Iterable[Optional[str]]) -> Set[str]:
    """Reservation ids that already have a room charge."""
    charged: Set[str] = set()
    for note in notes:
        fields = parse_room_charge_note(note)
        if fields and fields.get("reservationId"):
            charged.add(fields["reservationId"])
            continue
        legacy = parse_legacy_room_charge_meta(note)
        if legacy.reservation_id and is_legacy_room_charge_note(note):
            charged.add(legacy.reservation_id)
    return charged


# ====== legacy FOLIO: notes ======

def build_legacy_room_charge_note(
    reservation_id: str, date_key: str, rate: float, posted_by_email: Optional[str] = None
) -> str:
    parts = [
        LEGACY_ROOM_CHARGE_TAG,
        f"RES={reservation_id}",
        f"DATE={date_key}",
        f"RATE={format_number(rate)}",
    ]
    if posted_by_email:
        parts.append(f"BY={encode_value(posted_by_email)}")
    return ";".join(parts)


def is_legacy_room_charge_note(note: Optional[str]) -> bool:
    return isinstance(note, str) and LEGACY_ROOM_CHARGE_TAG in note


def _legacy_pairs(note: str) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for token in note.split(";"):
        token = token.strip()
        if token.startswith(LEGACY_PREFIX):
            token = token[len(LEGACY_PREFIX):]
        key, sep, value = token.partition("=")
        key = key.strip().upper()
        if sep and key:
            pairs[key] = value.strip()
    return pairs


def parse_legacy_room_charge_meta(note: Optional[str]) -> LegacyRoomChargeMeta:
    if not note:
        return LegacyRoomChargeMeta()
    pairs = _legacy_pairs(note)
    by = pairs.get("BY")
    return LegacyRoomChargeMeta(
        reservation_id=pairs.get("RES"),
        date_key=pairs.get("DATE"),
        rate=parse_number(pairs.get("RATE")),
        posted_by_email=decode_value(by) if by else None,
    )


def charge_date_key(note: Optional[str]) -> Optional[str]:
    """Night a charge belongs to, from either marker format."""
    fields = parse_room_charge_note(note)
    if fields is not None:
        date_key = fields.get("dateKey")
    else:
        date_key = parse_legacy_room_charge_meta(note).date_key
    return date_key if is_date_key(date_key) else None
