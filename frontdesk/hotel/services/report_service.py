"""
Report service
Revenue split into room / in-house menu / external menu
"""
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from frontdesk.config import settings
from frontdesk.hotel.codecs.revenue import (
    RevenueStream, effective_order_date_key, infer_revenue_stream, order_is_paid,
)
from frontdesk.models.ontology import Order, Room
from tagcore.coerce import round_money
from tagcore.dates import build_date_range, parse_date_key


def _empty_totals() -> Dict[str, float]:
    totals = {stream.value: 0.0 for stream in RevenueStream}
    totals["total"] = 0.0
    return totals


class ReportService:
    """Revenue reports"""

    def __init__(self, db: Session):
        self.db = db

    def _orders(self, hotel_id: Optional[int] = None, paid_only: bool = False) -> List[Order]:
        query = self.db.query(Order)
        if hotel_id is not None:
            room_ids = [r.id for r in self.db.query(Room).filter(Room.hotel_id == hotel_id).all()]
            query = query.filter(Order.room_id.in_(room_ids))
        orders = query.order_by(Order.id).all()
        if paid_only:
            orders = [o for o in orders if order_is_paid(o)]
        return orders

    def revenue_by_stream(self, hotel_id: Optional[int] = None, start_key: Optional[str] = None,
                          end_key: Optional[str] = None, paid_only: bool = False) -> Dict[str, float]:
        """
        Revenue totals per stream

        Args:
            hotel_id: restrict to orders on this hotel's rooms (external orders drop out)
            start_key / end_key: inclusive date-key range on the effective order date
            paid_only: count paid orders only
        """
        totals = _empty_totals()
        for order in self._orders(hotel_id, paid_only):
            date_key = effective_order_date_key(order, settings.hotel_tz)
            if start_key and date_key < start_key:
                continue
            if end_key and date_key > end_key:
                continue
            amount = order.total or 0.0
            totals[infer_revenue_stream(order).value] += amount
            totals["total"] += amount
        return {key: round_money(value) for key, value in totals.items()}

    def revenue_by_date(self, start_key: str, end_key: str, hotel_id: Optional[int] = None,
                        paid_only: bool = False) -> List[Dict]:
        """Daily revenue per stream; room charges count on the night they cover"""
        start, end = parse_date_key(start_key), parse_date_key(end_key)
        if start is None or end is None:
            raise ValueError("Date range must use YYYY-MM-DD")
        if end < start:
            raise ValueError("End date is before start date")

        days = build_date_range(start_key, (end - start).days + 1)
        by_day = {day: _empty_totals() for day in days}
        for order in self._orders(hotel_id, paid_only):
            totals = by_day.get(effective_order_date_key(order, settings.hotel_tz))
            if totals is None:
                continue
            amount = order.total or 0.0
            totals[infer_revenue_stream(order).value] += amount
            totals["total"] += amount

        return [
            {"date_key": day, **{key: round_money(value) for key, value in by_day[day].items()}}
            for day in days
        ]
