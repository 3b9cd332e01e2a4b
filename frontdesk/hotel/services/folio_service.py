"""
Folio service
Room charges are marked orders, manual entries are FOLIO notifications
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import logging
import math

from sqlalchemy.orm import Session

from frontdesk.config import settings
from frontdesk.hotel.codecs.folio_charges import (
    build_room_charge_note, charged_reservation_ids, is_legacy_room_charge_note,
    parse_legacy_room_charge_meta, parse_room_charge_note,
)
from frontdesk.hotel.codecs.folio_entries import (
    FOLIO_TYPE, FolioEntry, encode_folio_message, parse_folio_message,
)
from frontdesk.hotel.codecs.revenue import order_is_paid
from frontdesk.hotel.domain.stay_grouping import StayNight
from frontdesk.models.events import EventType, FolioEntryAddedData, RoomChargesPostedData
from frontdesk.models.ontology import (
    Notification, NotificationPriority, NotificationStatus, Order, OrderStatus, Reservation, Room,
)
from frontdesk.models.schemas import FolioEntryCreate
from frontdesk.services.event_bus import Event, event_bus
from tagcore.coerce import round_money
from tagcore.dates import to_date_key, to_iso_string

logger = logging.getLogger(__name__)

ReservationIds = Union[str, int, Iterable[Union[str, int]]]


def _id_set(reservation_ids: ReservationIds) -> set:
    if isinstance(reservation_ids, (str, int)):
        return {str(reservation_ids)}
    return {str(rid) for rid in reservation_ids}


def charge_reservation_id(note: Optional[str]) -> Optional[str]:
    """Reservation a room-charge order belongs to, from either marker format"""
    fields = parse_room_charge_note(note)
    if fields is not None:
        return fields.get("reservationId") or None
    if is_legacy_room_charge_note(note):
        return parse_legacy_room_charge_meta(note).reservation_id
    return None


class FolioService:
    """Guest folio: nightly room charges, manual charges and payments"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    # ====== nightly room charges ======

    def ensure_nightly_room_charges(self, room: Room, nights: List[StayNight], nightly_rate: float,
                                    currency: str, guest_email: str,
                                    guest_name: str = "") -> Dict[str, int]:
        """
        Post one room-charge order per night, skipping nights already charged

        Safe to call repeatedly: the reservation id in the order note is the
        idempotency key. A zero rate posts nothing.

        Returns:
            {"created": n, "skipped": n}
        """
        if not nights:
            return {"created": 0, "skipped": 0}

        try:
            rate = float(nightly_rate)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid nightly rate: {nightly_rate!r}")
        if not math.isfinite(rate) or rate < 0:
            raise ValueError(f"Invalid nightly rate: {nightly_rate!r}")

        if rate == 0:
            logger.warning(f"Room {room.room_number} has no nightly rate; {len(nights)} nights not charged")
            return {"created": 0, "skipped": len(nights)}

        existing_notes = [o.note for o in self.db.query(Order).filter(Order.room_id == room.id).all()]
        already_charged = charged_reservation_ids(existing_notes)

        created = 0
        skipped = 0
        for night in sorted(nights, key=lambda n: (n.date_key, n.reservation_id)):
            if not night.reservation_id or not night.date_key:
                continue
            if night.reservation_id in already_charged:
                skipped += 1
                continue

            order_number = f"{settings.ROOM_CHARGE_ORDER_PREFIX}{night.reservation_id}"
            if self.db.query(Order).filter(Order.order_number == order_number).first():
                skipped += 1
                continue

            self.db.add(Order(
                room_id=room.id,
                order_number=order_number,
                note=build_room_charge_note(
                    reservation_id=night.reservation_id,
                    date_key=night.date_key,
                    hotel_id=str(room.hotel_id),
                    room_number=room.room_number,
                    rate=rate,
                    currency=currency,
                ),
                total=rate,
                # completed so charges stay out of the kitchen queues
                status=OrderStatus.COMPLETED,
                user_email=guest_email,
                user_name=guest_name or guest_email,
                cart=[{
                    "id": order_number,
                    "title": f"Nightly Room Charge • Room {room.room_number} • {night.date_key}",
                    "price": rate,
                    "quantity": 1,
                }],
                paid=False,
            ))
            already_charged.add(night.reservation_id)
            created += 1

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Room {room.room_number} room charges: {created} created, {skipped} skipped")

        if created:
            self._publish_event(Event(
                event_type=EventType.FOLIO_ROOM_CHARGES_POSTED,
                timestamp=datetime.now(),
                data=RoomChargesPostedData(
                    room_id=room.id,
                    room_number=room.room_number,
                    rate=rate,
                    currency=currency,
                    created=created,
                    skipped=skipped,
                ).to_dict(),
                source="folio_service"
            ))
        return {"created": created, "skipped": skipped}

    def room_charge_orders(self, reservation_ids: ReservationIds) -> List[Order]:
        ids = _id_set(reservation_ids)
        orders = self.db.query(Order).filter(Order.note.isnot(None)).order_by(Order.id).all()
        return [o for o in orders if charge_reservation_id(o.note) in ids]

    def mark_orders_paid(self, reservation_ids: ReservationIds) -> int:
        """Settle every unpaid room charge of the folio; returns how many changed"""
        unpaid = [o for o in self.room_charge_orders(reservation_ids) if not order_is_paid(o)]
        for order in unpaid:
            order.paid = True
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if unpaid:
            logger.info(f"{len(unpaid)} room charge orders marked paid")
        return len(unpaid)

    # ====== manual entries ======

    def add_entry(self, data: FolioEntryCreate, created_by_email: Optional[str] = None,
                  now: Optional[datetime] = None) -> FolioEntry:
        """Record a manual charge or payment against a night reservation"""
        reservation = self.db.query(Reservation).filter(Reservation.id == data.reservation_id).first()
        if not reservation:
            raise ValueError(f"Reservation {data.reservation_id} not found")

        now = now or datetime.now(timezone.utc)
        entry = FolioEntry(
            kind=data.kind.value,
            amount=round_money(data.amount),
            description=data.description,
            reservation_id=str(reservation.id),
            room_id=str(reservation.room_id),
            date_key=to_date_key(reservation.reservation_time, settings.hotel_tz),
            created_at=to_iso_string(now),
            created_by_email=created_by_email,
            method=data.method.value if data.method else None,
            reference=data.reference or None,
        )
        notification = Notification(
            user_email=reservation.user_email,
            type=FOLIO_TYPE,
            message=encode_folio_message(entry),
            status=NotificationStatus.READ,
            priority=NotificationPriority.LOW,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        logger.info(f"Folio {entry.kind.lower()} {entry.amount} added to reservation {entry.reservation_id}")

        self._publish_event(Event(
            event_type=EventType.FOLIO_ENTRY_ADDED,
            timestamp=datetime.now(),
            data=FolioEntryAddedData(
                notification_id=notification.id,
                reservation_id=entry.reservation_id,
                kind=entry.kind,
                amount=entry.amount,
            ).to_dict(),
            source="folio_service"
        ))
        return entry

    def list_entries(self, reservation_ids: ReservationIds) -> List[FolioEntry]:
        """Decoded manual entries; malformed messages are ignored"""
        ids = _id_set(reservation_ids)
        notifications = self.db.query(Notification).filter(
            Notification.type == FOLIO_TYPE
        ).order_by(Notification.created_at, Notification.id).all()

        entries = []
        for notification in notifications:
            entry = parse_folio_message(notification.message)
            if entry is not None and entry.reservation_id in ids:
                entries.append(entry)
        return entries

    # ====== totals ======

    def get_folio(self, reservation_ids: ReservationIds) -> Dict[str, Any]:
        orders = self.room_charge_orders(reservation_ids)
        entries = self.list_entries(reservation_ids)

        paid_orders = [o for o in orders if order_is_paid(o)]
        unpaid_orders = [o for o in orders if not order_is_paid(o)]
        charges = sum(e.amount for e in entries if e.signed_amount > 0)
        payments = sum(e.amount for e in entries if e.signed_amount < 0)

        return {
            "room_charges": orders,
            "entries": entries,
            "paid_total": round_money(sum(o.total or 0 for o in paid_orders) + payments),
            "charges_total": round_money(sum(o.total or 0 for o in orders) + charges),
            "balance_due": round_money(
                sum(o.total or 0 for o in unpaid_orders) + sum(e.signed_amount for e in entries)
            ),
            "unpaid_count": len(unpaid_orders),
        }

    def folio_balance(self, reservation_ids: ReservationIds) -> float:
        """Unpaid room charges plus manual charges minus payments"""
        return self.get_folio(reservation_ids)["balance_due"]

    def is_folio_paid(self, reservation_ids: ReservationIds) -> bool:
        return self.folio_balance(reservation_ids) <= 0
