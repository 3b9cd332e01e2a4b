"""
Housekeeping service
Reads and rewrites the HK: tags in Room.special_requests
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from frontdesk.hotel.codecs.housekeeping import (
    HKStatus, ParsedHousekeeping, apply_housekeeping_patch, days_since,
    derive_room_status, parse_housekeeping_tags,
)
from frontdesk.hotel.domain.rules.housekeeping_rules import (
    mark_clean_patch, mark_dirty_patch, set_status_patch, toggle_cleaning_list_patch,
)
from frontdesk.models.events import EventType, HousekeepingChangedData
from frontdesk.models.ontology import Room
from frontdesk.services.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class HousekeepingService:
    """Housekeeping state per room"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def _get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise ValueError(f"Room {room_id} not found")
        return room

    def get_housekeeping(self, room_id: int) -> ParsedHousekeeping:
        return parse_housekeeping_tags(self._get_room(room_id).special_requests)

    def apply_patch(self, room_id: int, patch: Any) -> ParsedHousekeeping:
        """
        Apply a housekeeping patch and persist it

        Args:
            room_id: room id
            patch: dict or HousekeepingPatch

        Returns:
            The re-parsed housekeeping state
        """
        room = self._get_room(room_id)
        before = parse_housekeeping_tags(room.special_requests)
        room.special_requests = apply_housekeeping_patch(room.special_requests, patch)
        self.db.commit()
        self.db.refresh(room)

        after = parse_housekeeping_tags(room.special_requests)
        logger.info(
            f"Room {room.room_number} housekeeping {before.hk.status.value} -> {after.hk.status.value}"
            f" (in list: {after.hk.in_cleaning_list})"
        )

        self._publish_event(Event(
            event_type=EventType.ROOM_HOUSEKEEPING_CHANGED,
            timestamp=datetime.now(),
            data=HousekeepingChangedData(
                room_id=room.id,
                room_number=room.room_number,
                old_status=before.hk.status.value,
                new_status=after.hk.status.value,
                in_cleaning_list=after.hk.in_cleaning_list,
                reason=after.hk.reason,
            ).to_dict(),
            source="housekeeping_service"
        ))
        return after

    def mark_clean(self, room_id: int, now: Optional[datetime] = None) -> ParsedHousekeeping:
        return self.apply_patch(room_id, mark_clean_patch(now))

    def mark_dirty(self, room_id: int) -> ParsedHousekeeping:
        return self.apply_patch(room_id, mark_dirty_patch())

    def toggle_cleaning_list(self, room_id: int) -> ParsedHousekeeping:
        current = self.get_housekeeping(room_id)
        return self.apply_patch(room_id, toggle_cleaning_list_patch(current.hk))

    def set_status(self, room_id: int, status: HKStatus, reason: Optional[str] = None,
                   now: Optional[datetime] = None) -> ParsedHousekeeping:
        """Explicit status choice; MAINTENANCE / OUT_OF_ORDER need a reason"""
        current = self.get_housekeeping(room_id)
        return self.apply_patch(room_id, set_status_patch(status, reason, current.hk, now))

    def get_board(self, hotel_id: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Room board rows sorted by room number"""
        rooms = self.db.query(Room).filter(Room.hotel_id == hotel_id).order_by(Room.room_number).all()
        board = []
        for room in rooms:
            parsed = parse_housekeeping_tags(room.special_requests)
            board.append({
                "room_id": room.id,
                "room_number": room.room_number,
                "status": derive_room_status(bool(room.reserved), parsed.hk),
                "housekeeping": parsed.hk,
                "days_since_cleaned": days_since(parsed.hk.last_cleaned_at, now),
                "notes": parsed.notes,
            })
        return board

    def get_cleaning_list(self, hotel_id: int) -> List[Room]:
        rooms = self.db.query(Room).filter(Room.hotel_id == hotel_id).order_by(Room.room_number).all()
        return [r for r in rooms if parse_housekeeping_tags(r.special_requests).hk.in_cleaning_list]
