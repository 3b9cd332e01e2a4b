"""
frontdesk/hotel/domain/stay_grouping.py

Stays derived from one-row-per-night reservations.

The database stores a reservation per night. Reception, the room board
and the folio all work with stays: consecutive nights for the same guest
in the same room. Every view groups through this module so they agree.
"""
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from frontdesk.models.ontology import ReservationStatus
from tagcore.dates import add_days_to_date_key, to_date_key


@dataclass
class NightRow:
    """One night reservation plus a snapshot of its room"""
    id: str
    room_id: Optional[str]
    user_email: str
    reservation_time: Any                  # datetime or ISO string
    status: str = ReservationStatus.PENDING
    num_of_diners: Optional[int] = 0
    guest_name: str = ""
    guest_phone: Optional[str] = None
    room_number: int = 0
    hotel_id: str = ""
    room_reserved: bool = False
    special_requests: List[str] = field(default_factory=list)

    @classmethod
    def from_reservation(cls, reservation) -> "NightRow":
        """Build from a Reservation ORM row (with its room loaded)."""
        room = reservation.room
        status = reservation.status
        return cls(
            id=str(reservation.id),
            room_id=str(reservation.room_id) if reservation.room_id is not None else None,
            user_email=reservation.user_email,
            reservation_time=reservation.reservation_time,
            status=status.value if hasattr(status, "value") else str(status),
            num_of_diners=reservation.num_of_diners,
            guest_name=reservation.guest_name or "",
            guest_phone=reservation.guest_phone,
            room_number=room.room_number if room is not None else 0,
            hotel_id=str(room.hotel_id) if room is not None else "",
            room_reserved=bool(room.reserved) if room is not None else False,
            special_requests=list(room.special_requests or []) if room is not None else [],
        )


@dataclass
class StayNight:
    reservation_id: str
    date_key: str


@dataclass
class StayBlock:
    stay_id: str
    room_id: str
    room_number: int
    hotel_id: str
    user_email: str
    guest_name: str
    guest_phone: Optional[str]
    guests: int                 # max across nights
    nights: int
    start_date_key: str         # arrival night
    last_night_key: str         # inclusive
    end_date_key: str           # checkout day, exclusive
    status: str
    room_reserved_now: bool
    special_requests: List[str]
    reservations: List[NightRow]
    reservation_ids: List[str]
    nights_list: List[StayNight]


def aggregate_stay_status(nights: List[NightRow]) -> str:
    """
    Stay status from its nights.

    CANCELLED only if every night is cancelled; otherwise CONFIRMED if any
    night is, then PENDING if any night is, else COMPLETED.
    """
    if not nights:
        return ReservationStatus.PENDING
    statuses = [night.status for night in nights]
    if all(status == ReservationStatus.CANCELLED for status in statuses):
        return ReservationStatus.CANCELLED
    if ReservationStatus.CONFIRMED in statuses:
        return ReservationStatus.CONFIRMED
    if ReservationStatus.PENDING in statuses:
        return ReservationStatus.PENDING
    return ReservationStatus.COMPLETED


def split_contiguous_date_keys(sorted_keys: List[str]) -> List[List[str]]:
    """Split sorted date keys into runs of exactly consecutive days."""
    runs: List[List[str]] = []
    current: List[str] = []
    for key in sorted_keys:
        if current and key == add_days_to_date_key(current[-1], 1):
            current.append(key)
            continue
        if current:
            runs.append(current)
        current = [key]
    if current:
        runs.append(current)
    return runs


def _sort_time(row: NightRow):
    value = row.reservation_time
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def group_reservations_into_stays(rows: Iterable[NightRow], tz: Optional[tzinfo] = None) -> List[StayBlock]:
    """
    Group night rows into stays.

    Args:
        rows: night reservations; rows without a room are skipped
        tz: zone used to turn reservation times into date keys

    Returns:
        Stays sorted by room number, then arrival date
    """
    buckets: Dict[str, List[NightRow]] = {}
    for row in rows or []:
        if not row.room_id:
            continue
        buckets.setdefault(f"{row.room_id}||{row.user_email}", []).append(row)

    stays: List[StayBlock] = []
    for key, group in buckets.items():
        # first row per night wins
        by_date: Dict[str, NightRow] = {}
        for row in group:
            date_key = to_date_key(row.reservation_time, tz)
            if date_key and date_key not in by_date:
                by_date[date_key] = row

        for run in split_contiguous_date_keys(sorted(by_date)):
            nights = sorted((by_date[dk] for dk in run), key=_sort_time)
            first = nights[0]
            start, last = run[0], run[-1]

            stays.append(StayBlock(
                stay_id=f"{key}::{start}",
                room_id=first.room_id,
                room_number=first.room_number or 0,
                hotel_id=first.hotel_id,
                user_email=first.user_email,
                guest_name=first.guest_name or first.user_email,
                guest_phone=first.guest_phone,
                guests=max([int(n.num_of_diners or 0) for n in nights] + [0]),
                nights=len(nights),
                start_date_key=start,
                last_night_key=last,
                end_date_key=add_days_to_date_key(last, 1),
                status=aggregate_stay_status(nights),
                room_reserved_now=bool(first.room_reserved),
                special_requests=list(first.special_requests),
                reservations=nights,
                reservation_ids=[n.id for n in nights],
                nights_list=[StayNight(n.id, to_date_key(n.reservation_time, tz)) for n in nights],
            ))

    stays.sort(key=lambda stay: (stay.room_number, stay.start_date_key))
    return stays


# ====== helpers ======

def covers_date_key(stay: StayBlock, date_key: str) -> bool:
    """True if the guest sleeps in the room on that night."""
    return stay.start_date_key <= date_key <= stay.last_night_key


def folio_reservation_id_for_date_key(stay: StayBlock, date_key: str) -> str:
    """Night matching the date, else the first night."""
    for night in stay.nights_list:
        if night.date_key == date_key:
            return night.reservation_id
    return stay.reservation_ids[0]


def sum_stay_guests(stays: Iterable[StayBlock]) -> int:
    return sum(int(stay.guests or 0) for stay in stays or [])


def find_stay_by_reservation_id(stays: Iterable[StayBlock], reservation_id: str) -> Optional[StayBlock]:
    for stay in stays:
        if reservation_id in stay.reservation_ids:
            return stay
    return None


def find_stay(stays: Iterable[StayBlock], stay_id: str) -> Optional[StayBlock]:
    for stay in stays:
        if stay.stay_id == stay_id:
            return stay
    return None


def is_stay_checked_in(stay: StayBlock) -> bool:
    return any(night.status == ReservationStatus.CONFIRMED for night in stay.reservations)


def _active(stay: StayBlock) -> bool:
    return stay.status != ReservationStatus.CANCELLED


def arrivals_on(stays: Iterable[StayBlock], date_key: str) -> List[StayBlock]:
    return [s for s in stays if _active(s) and s.start_date_key == date_key]


def departures_on(stays: Iterable[StayBlock], date_key: str) -> List[StayBlock]:
    return [s for s in stays if _active(s) and s.end_date_key == date_key]


def in_house_on(stays: Iterable[StayBlock], date_key: str) -> List[StayBlock]:
    """Checked-in stays covering the night."""
    return [s for s in stays if is_stay_checked_in(s) and covers_date_key(s, date_key)]
