"""
Revenue classification of orders
"""
from datetime import datetime

from frontdesk.hotel.codecs.folio_charges import build_legacy_room_charge_note, build_room_charge_note
from frontdesk.hotel.codecs.revenue import (
    RevenueStream, effective_order_date_key, format_money, infer_revenue_stream,
    is_room_charge_order, make_order_number, order_is_paid,
)
from frontdesk.models.ontology import Order


class TestRoomChargeDetection:
    """Which orders are room charges"""

    def test_current_marker(self):
        """FD:ROOM_CHARGE note"""
        assert is_room_charge_order({"note": build_room_charge_note("1", "2025-01-01", "h", 1, 10, "USD")})

    def test_legacy_marker(self):
        """FOLIO:TYPE=ROOM_CHARGE anywhere in the note"""
        assert is_room_charge_order({"note": "paid cash; " + build_legacy_room_charge_note("1", "2025-01-01", 10)})

    def test_legacy_order_number(self):
        """ROOM- order numbers"""
        assert is_room_charge_order({"order_number": "ROOM-77"})

    def test_cart_sku(self):
        """Cart line with id or sku ROOM_CHARGE"""
        assert is_room_charge_order({"cart": [{"id": "burger"}, {"sku": "room_charge"}]})
        assert not is_room_charge_order({"cart": [{"id": "burger"}, "junk"]})

    def test_orm_object(self):
        """Works on ORM rows too"""
        order = Order(order_number="FD1", note=None, cart=[], room_id=None)
        assert not is_room_charge_order(order)


class TestRevenueStream:
    """Stream split"""

    def test_streams(self):
        """ROOM, then in-house by room, else external"""
        assert infer_revenue_stream({"order_number": "ROOM-1", "room_id": 3}) == RevenueStream.ROOM
        assert infer_revenue_stream({"room_id": 3}) == RevenueStream.MENU_IN_HOUSE
        assert infer_revenue_stream({"room_id": None}) == RevenueStream.MENU_EXTERNAL

    def test_effective_date(self):
        """Room charges count on their night"""
        charge = {
            "note": build_room_charge_note("1", "2025-01-01", "h", 1, 10, "USD"),
            "order_date": datetime(2025, 1, 3, 9, 0),
        }
        menu = {"note": None, "order_date": datetime(2025, 1, 3, 9, 0)}
        assert effective_order_date_key(charge) == "2025-01-01"
        assert effective_order_date_key(menu) == "2025-01-03"


class TestOrderHelpers:
    """Paid flag, numbering, money"""

    def test_paid(self):
        """paid flag or a payment token"""
        assert order_is_paid({"paid": True})
        assert order_is_paid({"paid": False, "payment_token": "CASH:1"})
        assert not order_is_paid({"paid": False, "payment_token": "  "})
        assert not order_is_paid({})

    def test_order_number(self):
        """Prefix, timestamp and four hex digits"""
        number = make_order_number("FD", datetime(2025, 1, 2, 3, 4, 5, 678000))
        assert number.startswith("FD250102030405678")
        assert len(number) == len("FD250102030405678") + 4

    def test_format_money(self):
        """Two decimals with thousands separator"""
        assert format_money(1234.5, "EUR") == "1,234.50 EUR"
        assert format_money(None) == "0.00 USD"
