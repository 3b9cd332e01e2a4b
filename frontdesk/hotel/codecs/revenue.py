"""
frontdesk/hotel/codecs/revenue.py

Order classification for revenue reporting.

ROOM           tagged room charge
MENU_IN_HOUSE  order placed against a room (room service / dine-in)
MENU_EXTERNAL  order without a room (delivery / takeaway)
"""
import secrets
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from frontdesk.hotel.codecs.folio_charges import (
    charge_date_key,
    is_legacy_room_charge_note,
    is_room_charge_note,
)
from tagcore.dates import to_date_key

LEGACY_ROOM_ORDER_PREFIX = "ROOM-"
ROOM_CHARGE_SKU = "ROOM_CHARGE"


class RevenueStream(str, Enum):
    ROOM = "ROOM"
    MENU_IN_HOUSE = "MENU_IN_HOUSE"
    MENU_EXTERNAL = "MENU_EXTERNAL"


def _field(order: Any, name: str) -> Any:
    if isinstance(order, dict):
        return order.get(name)
    return getattr(order, name, None)


def is_room_charge_order(order: Any) -> bool:
    """
    True when an order is a room charge.

    Recognised by either note marker, the old ``ROOM-`` order number, or a
    cart line with id / sku ROOM_CHARGE.
    """
    note = _field(order, "note") or ""
    if is_room_charge_note(note) or is_legacy_room_charge_note(note):
        return True

    order_number = _field(order, "order_number") or ""
    if order_number.startswith(LEGACY_ROOM_ORDER_PREFIX):
        return True

    cart = _field(order, "cart")
    if isinstance(cart, list):
        for item in cart:
            if not isinstance(item, dict):
                continue
            ident = item.get("id") or item.get("sku") or ""
            if str(ident).upper() == ROOM_CHARGE_SKU:
                return True
    return False


def infer_revenue_stream(order: Any) -> RevenueStream:
    if is_room_charge_order(order):
        return RevenueStream.ROOM
    if _field(order, "room_id"):
        return RevenueStream.MENU_IN_HOUSE
    return RevenueStream.MENU_EXTERNAL


def effective_order_date_key(order: Any, tz=None) -> str:
    """Room charges count on the night they cover; other orders on their order date."""
    night = charge_date_key(_field(order, "note"))
    if night:
        return night
    return to_date_key(_field(order, "order_date"), tz)


def order_is_paid(order: Any) -> bool:
    if _field(order, "paid") is True:
        return True
    token = _field(order, "payment_token")
    return isinstance(token, str) and bool(token.strip())


def make_order_number(prefix: str = "FD", now: Optional[datetime] = None) -> str:
    """``<prefix>yymmddHHMMSSmmm`` plus four random hex digits."""
    now = now or datetime.now()
    stamp = now.strftime("%y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
    return f"{prefix}{stamp}{secrets.token_hex(2).upper()}"


def format_money(amount: Optional[float], currency: str = "USD") -> str:
    value = amount if isinstance(amount, (int, float)) and not isinstance(amount, bool) else 0.0
    return f"{value:,.2f} {currency}"
