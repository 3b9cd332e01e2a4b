"""
Hotel settings service
Settings live in Hotel.description next to the human-written text
"""
from datetime import datetime
from typing import Callable
import logging

from sqlalchemy.orm import Session

from frontdesk.hotel.codecs.hotel_settings import (
    HotelSettings, ParsedHotelSettings, apply_hotel_settings_patch,
    parse_hotel_settings, summarize_opening_hours,
)
from frontdesk.models.events import EventType, HotelSettingsChangedData
from frontdesk.models.ontology import Hotel
from frontdesk.models.schemas import HotelSettingsPatch, OpeningHoursUpdate
from frontdesk.services.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class HotelSettingsService:
    """Per-hotel configuration"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def _get_hotel(self, hotel_id: int) -> Hotel:
        hotel = self.db.query(Hotel).filter(Hotel.id == hotel_id).first()
        if not hotel:
            raise ValueError(f"Hotel {hotel_id} not found")
        return hotel

    def get_parsed(self, hotel_id: int) -> ParsedHotelSettings:
        return parse_hotel_settings(self._get_hotel(hotel_id).description)

    def get_settings(self, hotel_id: int) -> HotelSettings:
        return self.get_parsed(hotel_id).settings

    def update_settings(self, hotel_id: int, data: HotelSettingsPatch) -> HotelSettings:
        """Apply only the fields set on the patch"""
        hotel = self._get_hotel(hotel_id)
        changed = sorted(data.model_dump(exclude_unset=True).keys())

        hotel.description = apply_hotel_settings_patch(hotel.description, data)
        self.db.commit()
        self.db.refresh(hotel)

        logger.info(f"Hotel {hotel.id} settings updated: {', '.join(changed) or 'nothing'}")

        self._publish_event(Event(
            event_type=EventType.HOTEL_SETTINGS_CHANGED,
            timestamp=datetime.now(),
            data=HotelSettingsChangedData(hotel_id=hotel.id, changed_fields=changed).to_dict(),
            source="hotel_settings_service"
        ))
        return parse_hotel_settings(hotel.description).settings

    def update_opening_hours(self, hotel_id: int, hours: OpeningHoursUpdate) -> HotelSettings:
        return self.update_settings(hotel_id, HotelSettingsPatch(opening_hours=hours))

    def summarize_opening_hours(self, hotel_id: int) -> str:
        return summarize_opening_hours(self.get_settings(hotel_id).opening_hours)
