"""
Room rate service
Room override in RATE: tags, hotel base rate in the hotel settings
"""
from datetime import datetime
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from frontdesk.hotel.codecs.hotel_settings import parse_hotel_settings
from frontdesk.hotel.codecs.room_rate import apply_room_rate_patch, get_effective_rate, parse_room_rate_tags
from frontdesk.models.events import EventType, RoomRateChangedData
from frontdesk.models.ontology import Hotel, Room
from frontdesk.models.schemas import RoomRateUpdate
from frontdesk.services.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class RoomRateService:
    """Nightly rate per room"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def _get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise ValueError(f"Room {room_id} not found")
        return room

    def get_override(self, room_id: int) -> Optional[float]:
        return parse_room_rate_tags(self._get_room(room_id).special_requests).rate.override_nightly_rate

    def set_override(self, room_id: int, data: RoomRateUpdate) -> Optional[float]:
        """
        Set or clear the override

        Args:
            room_id: room id
            data: validated update; None clears the override

        Returns:
            The stored override
        """
        room = self._get_room(room_id)
        old = parse_room_rate_tags(room.special_requests).rate.override_nightly_rate

        room.special_requests = apply_room_rate_patch(
            room.special_requests, {"override_nightly_rate": data.override_nightly_rate}
        )
        self.db.commit()
        self.db.refresh(room)

        new = parse_room_rate_tags(room.special_requests).rate.override_nightly_rate
        if old == new:
            return new

        logger.info(f"Room {room.room_number} rate override {old} -> {new}")
        self._publish_event(Event(
            event_type=EventType.ROOM_RATE_CHANGED,
            timestamp=datetime.now(),
            data=RoomRateChangedData(
                room_id=room.id,
                room_number=room.room_number,
                old_rate=old,
                new_rate=new,
            ).to_dict(),
            source="room_rate_service"
        ))
        return new

    def get_effective_rate(self, room_id: int) -> float:
        """Room override if set, else the hotel base rate"""
        room = self._get_room(room_id)
        hotel = self.db.query(Hotel).filter(Hotel.id == room.hotel_id).first()
        base = parse_hotel_settings(hotel.description if hotel else None).settings.base_nightly_rate
        override = parse_room_rate_tags(room.special_requests).rate.override_nightly_rate
        return get_effective_rate(base, override)
