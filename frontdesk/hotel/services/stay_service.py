"""
Stay service
Bookings are written as one reservation per night; every read goes
through the stay grouping so reception, board and folio agree
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from frontdesk.config import settings
from frontdesk.hotel.codecs.hotel_settings import parse_hotel_settings
from frontdesk.hotel.codecs.housekeeping import (
    DerivedRoomStatus, apply_housekeeping_patch, derive_room_status, parse_housekeeping_tags,
)
from frontdesk.hotel.codecs.revenue import format_money
from frontdesk.hotel.codecs.room_rate import get_effective_rate, parse_room_rate_tags
from frontdesk.hotel.domain.rules.housekeeping_rules import mark_dirty_patch
from frontdesk.hotel.domain.stay_grouping import (
    NightRow, StayBlock, arrivals_on, departures_on, find_stay, find_stay_by_reservation_id,
    group_reservations_into_stays, in_house_on, is_stay_checked_in, sum_stay_guests,
)
from frontdesk.hotel.services.folio_service import FolioService
from frontdesk.models.events import EventType, StayChangedData
from frontdesk.models.ontology import Hotel, Reservation, ReservationStatus, Room
from frontdesk.models.schemas import StayBookingCreate
from frontdesk.services.event_bus import Event, event_bus
from tagcore.dates import build_date_range, date_key_to_noon, to_date_key, today_date_key

logger = logging.getLogger(__name__)


class StayService:
    """Stay lifecycle: book, check in, check out, cancel"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    # ====== reads ======

    def _night_rows(self, hotel_id: Optional[int] = None) -> List[NightRow]:
        query = self.db.query(Reservation).join(Room, Reservation.room_id == Room.id)
        if hotel_id is not None:
            query = query.filter(Room.hotel_id == hotel_id)
        reservations = query.all()
        # an active night wins over a cancelled one on the same date
        reservations.sort(key=lambda r: (r.status == ReservationStatus.CANCELLED, r.id))
        return [NightRow.from_reservation(r) for r in reservations]

    def list_stays(self, hotel_id: Optional[int] = None) -> List[StayBlock]:
        return group_reservations_into_stays(self._night_rows(hotel_id), settings.hotel_tz)

    def get_stay(self, stay_id: str) -> StayBlock:
        stay = find_stay(self.list_stays(), stay_id)
        if not stay:
            raise ValueError(f"Stay {stay_id} not found")
        return stay

    def board_for_date(self, hotel_id: int, date_key: Optional[str] = None) -> Dict[str, Any]:
        """Arrivals, in-house and departures for one day"""
        date_key = date_key or today_date_key(settings.hotel_tz)
        stays = self.list_stays(hotel_id)
        in_house = in_house_on(stays, date_key)
        return {
            "date_key": date_key,
            "arrivals": arrivals_on(stays, date_key),
            "in_house": in_house,
            "departures": departures_on(stays, date_key),
            "guests_in_house": sum_stay_guests(in_house),
        }

    # ====== helpers ======

    def _nights(self, stay: StayBlock) -> List[Reservation]:
        ids = [int(rid) for rid in stay.reservation_ids]
        return self.db.query(Reservation).filter(Reservation.id.in_(ids)).all()

    def _room(self, stay: StayBlock) -> Room:
        room = self.db.query(Room).filter(Room.id == int(stay.room_id)).first()
        if not room:
            raise ValueError(f"Room {stay.room_id} not found")
        return room

    def _hotel_settings(self, room: Room):
        hotel = self.db.query(Hotel).filter(Hotel.id == room.hotel_id).first()
        return parse_hotel_settings(hotel.description if hotel else None).settings

    def _can_override(self, actor_role: Optional[str]) -> bool:
        role = actor_role.value if hasattr(actor_role, "value") else (actor_role or "")
        return role.upper() in settings.dirty_checkin_override_roles

    def _publish_stay(self, event_type: EventType, stay: StayBlock,
                      actor_role: Optional[str] = None) -> None:
        self._publish_event(Event(
            event_type=event_type,
            timestamp=datetime.now(),
            data=StayChangedData(
                stay_id=stay.stay_id,
                room_id=int(stay.room_id),
                room_number=stay.room_number,
                user_email=stay.user_email,
                guest_name=stay.guest_name,
                nights=stay.nights,
                start_date_key=stay.start_date_key,
                end_date_key=stay.end_date_key,
                actor_role=actor_role.value if hasattr(actor_role, "value") else actor_role,
            ).to_dict(),
            source="stay_service"
        ))

    # ====== lifecycle ======

    def book_stay(self, data: StayBookingCreate) -> StayBlock:
        """
        Book consecutive nights in one room

        Args:
            data: validated booking (1 to MAX_STAY_NIGHTS nights)

        Returns:
            The new stay
        """
        room = self.db.query(Room).filter(Room.id == data.room_id).first()
        if not room:
            raise ValueError(f"Room {data.room_id} not found")

        date_keys = build_date_range(data.start_date.isoformat(), data.nights)
        wanted = set(date_keys)
        existing = self.db.query(Reservation).filter(
            Reservation.room_id == room.id,
            Reservation.status != ReservationStatus.CANCELLED
        ).all()
        for reservation in existing:
            night = to_date_key(reservation.reservation_time, settings.hotel_tz)
            if night in wanted:
                raise ValueError(f"Room {room.room_number} is already booked on {night}")

        nights = [
            Reservation(
                room_id=room.id,
                user_email=data.user_email,
                guest_name=data.guest_name.strip(),
                guest_phone=data.guest_phone,
                reservation_time=date_key_to_noon(date_key),
                num_of_diners=data.guests,
                status=ReservationStatus.PENDING,
            )
            for date_key in date_keys
        ]
        self.db.add_all(nights)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        # adjacent nights of the same guest merge into one stay
        stay = find_stay_by_reservation_id(self.list_stays(room.hotel_id), str(nights[0].id))
        logger.info(
            f"Stay booked: room {room.room_number}, {data.user_email}, "
            f"{stay.start_date_key} -> {stay.end_date_key} ({stay.nights} nights)"
        )
        self._publish_stay(EventType.STAY_BOOKED, stay)
        return stay

    def check_in(self, stay_id: str, actor_role: Optional[str] = None,
                 allow_override: bool = False) -> StayBlock:
        """
        Check a stay in

        The room must be vacant and clean unless ``allow_override`` is set
        by a role listed in ALLOW_DIRTY_CHECKIN_OVERRIDE_ROLES. Room charges
        are posted when the hotel has auto-posting switched on.
        """
        stay = self.get_stay(stay_id)
        if stay.status == ReservationStatus.CANCELLED:
            raise ValueError("Cannot check in a cancelled stay")
        if stay.status == ReservationStatus.COMPLETED:
            raise ValueError("Stay is already checked out")
        if is_stay_checked_in(stay):
            raise ValueError("Stay is already checked in")

        room = self._room(stay)
        if room.reserved:
            raise ValueError(f"Room {room.room_number} is already occupied")

        hk = parse_housekeeping_tags(room.special_requests).hk
        room_status = derive_room_status(False, hk)
        if room_status != DerivedRoomStatus.VACANT_CLEAN:
            if not (allow_override and self._can_override(actor_role)):
                raise ValueError(f"Room {room.room_number} is {room_status.value}; check-in needs a clean room")
            logger.warning(f"Room {room.room_number} checked in while {room_status.value} (override by {actor_role})")

        for night in self._nights(stay):
            if night.status == ReservationStatus.PENDING:
                night.status = ReservationStatus.CONFIRMED
        room.reserved = True
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        stay = self.get_stay(stay_id)
        logger.info(f"Stay {stay.stay_id} checked in to room {room.room_number}")

        hotel_settings = self._hotel_settings(room)
        if hotel_settings.auto_post_room_charges:
            override = parse_room_rate_tags(room.special_requests).rate.override_nightly_rate
            rate = get_effective_rate(hotel_settings.base_nightly_rate, override)
            active = {r.id for r in stay.reservations if r.status != ReservationStatus.CANCELLED}
            FolioService(self.db, self._publish_event).ensure_nightly_room_charges(
                room=room,
                nights=[n for n in stay.nights_list if n.reservation_id in active],
                nightly_rate=rate,
                currency=hotel_settings.currency,
                guest_email=stay.user_email,
                guest_name=stay.guest_name,
            )

        self._publish_stay(EventType.STAY_CHECKED_IN, stay, actor_role)
        return stay

    def check_out(self, stay_id: str, actor_role: Optional[str] = None,
                  allow_override: bool = False) -> StayBlock:
        """
        Check a stay out: complete the nights, release the room, mark it dirty

        Blocked while the folio has a balance due and the hotel requires a
        paid folio, unless overridden by a permitted role.
        """
        stay = self.get_stay(stay_id)
        if not is_stay_checked_in(stay):
            raise ValueError("Stay is not checked in")

        room = self._room(stay)
        hotel_settings = self._hotel_settings(room)
        if hotel_settings.checkout_requires_paid_folio:
            balance = FolioService(self.db, self._publish_event).folio_balance(stay.reservation_ids)
            if balance > 0:
                if not (allow_override and self._can_override(actor_role)):
                    raise ValueError(
                        f"Checkout requires a paid folio (balance due {format_money(balance, hotel_settings.currency)})"
                    )
                logger.warning(f"Stay {stay.stay_id} checked out with balance {balance} (override by {actor_role})")

        for night in self._nights(stay):
            if night.status != ReservationStatus.CANCELLED:
                night.status = ReservationStatus.COMPLETED
        room.reserved = False
        room.special_requests = apply_housekeeping_patch(room.special_requests, mark_dirty_patch())
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        stay = self.get_stay(stay_id)
        logger.info(f"Stay {stay.stay_id} checked out of room {room.room_number}; room marked dirty")
        self._publish_stay(EventType.STAY_CHECKED_OUT, stay, actor_role)
        return stay

    def cancel_stay(self, stay_id: str) -> StayBlock:
        """Cancel a stay that has not been checked in"""
        stay = self.get_stay(stay_id)
        if is_stay_checked_in(stay):
            raise ValueError("Cannot cancel a checked-in stay")
        if stay.status == ReservationStatus.COMPLETED:
            raise ValueError("Cannot cancel a completed stay")
        if stay.status == ReservationStatus.CANCELLED:
            return stay

        for night in self._nights(stay):
            if night.status == ReservationStatus.PENDING:
                night.status = ReservationStatus.CANCELLED
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        stay = self.get_stay(stay_id)
        logger.info(f"Stay {stay.stay_id} cancelled")
        self._publish_stay(EventType.STAY_CANCELLED, stay)
        return stay
