"""
frontdesk/hotel/codecs/folio_entries.py

Manual folio charges and payments, stored as notifications:
type ``FOLIO``, message ``FOLIO|<json>``.

Unlike tasks there is no plain-text fallback. An entry that fails any
check is not a folio entry and decodes to None.
"""
import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

FOLIO_TYPE = "FOLIO"
FOLIO_PREFIX = "FOLIO|"


class FolioKind(str, Enum):
    CHARGE = "CHARGE"
    PAYMENT = "PAYMENT"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK = "BANK"
    OTHER = "OTHER"


PAYMENT_METHODS = {method.value for method in PaymentMethod}


@dataclass
class FolioEntry:
    kind: str
    amount: float                 # always positive
    description: str
    reservation_id: str
    room_id: str
    date_key: str                 # YYYY-MM-DD
    created_at: str               # ISO-8601
    created_by_email: Optional[str] = None
    method: Optional[str] = None  # payments only
    reference: Optional[str] = None
    v: int = 1

    @property
    def signed_amount(self) -> float:
        """Charges add to the balance, payments reduce it."""
        return self.amount if self.kind == FolioKind.CHARGE.value else -self.amount

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "v": self.v,
            "kind": self.kind,
            "amount": self.amount,
            "description": self.description,
            "reservationId": self.reservation_id,
            "tableId": self.room_id,
            "dateKey": self.date_key,
            "createdAt": self.created_at,
        }
        if self.created_by_email is not None:
            out["createdByEmail"] = self.created_by_email
        if self.method is not None:
            out["method"] = self.method
        if self.reference is not None:
            out["reference"] = self.reference
        return out


def encode_folio_message(entry: FolioEntry) -> str:
    return FOLIO_PREFIX + json.dumps(entry.to_dict(), separators=(",", ":"), ensure_ascii=False)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def parse_folio_message(message: Optional[str]) -> Optional[FolioEntry]:
    if not isinstance(message, str) or not message.startswith(FOLIO_PREFIX):
        return None
    try:
        data = json.loads(message[len(FOLIO_PREFIX):])
    except (ValueError, RecursionError):
        return None

    if not isinstance(data, dict) or isinstance(data.get("v"), bool) or data.get("v") != 1:
        return None
    if data.get("kind") not in (FolioKind.CHARGE.value, FolioKind.PAYMENT.value):
        return None
    amount = data.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not 0 < amount < math.inf:
        return None
    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        return None
    for key in ("reservationId", "tableId", "dateKey", "createdAt"):
        if not _non_empty_str(data.get(key)):
            return None

    created_by = data.get("createdByEmail")
    method = data.get("method")
    reference = data.get("reference")
    return FolioEntry(
        kind=data["kind"],
        amount=float(amount),
        description=description,
        reservation_id=data["reservationId"],
        room_id=data["tableId"],
        date_key=data["dateKey"],
        created_at=data["createdAt"],
        created_by_email=created_by if isinstance(created_by, str) else None,
        method=method if method in PAYMENT_METHODS else None,
        reference=reference if isinstance(reference, str) else None,
    )
