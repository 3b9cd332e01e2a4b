"""
Domain events
Published on the in-memory event bus after each committed state change
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List


class EventType(str, Enum):
    """Event type names"""
    # Rooms
    ROOM_HOUSEKEEPING_CHANGED = "room.housekeeping_changed"
    ROOM_RATE_CHANGED = "room.rate_changed"

    # Hotel
    HOTEL_SETTINGS_CHANGED = "hotel.settings_changed"

    # Customers
    CUSTOMER_REGISTERED = "customer.registered"

    # Tasks
    TASK_CREATED = "task.created"
    TASK_COMPLETED = "task.completed"
    TASK_REOPENED = "task.reopened"

    # Folio
    FOLIO_ROOM_CHARGES_POSTED = "folio.room_charges_posted"
    FOLIO_ENTRY_ADDED = "folio.entry_added"

    # Stays
    STAY_BOOKED = "stay.booked"
    STAY_CHECKED_IN = "stay.checked_in"
    STAY_CHECKED_OUT = "stay.checked_out"
    STAY_CANCELLED = "stay.cancelled"


@dataclass
class BaseEventData:
    """Base event payload"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dict with ISO timestamps"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass
class HousekeepingChangedData(BaseEventData):
    room_id: int = 0
    room_number: int = 0
    old_status: str = ""
    new_status: str = ""
    in_cleaning_list: bool = False
    reason: Optional[str] = None


@dataclass
class RoomRateChangedData(BaseEventData):
    room_id: int = 0
    room_number: int = 0
    old_rate: Optional[float] = None
    new_rate: Optional[float] = None


@dataclass
class HotelSettingsChangedData(BaseEventData):
    hotel_id: int = 0
    changed_fields: List[str] = field(default_factory=list)


@dataclass
class CustomerRegisteredData(BaseEventData):
    customer_email: str = ""
    source: str = ""
    actor_email: str = ""
    created: bool = True
    notification_id: int = 0


@dataclass
class TaskCreatedData(BaseEventData):
    task_id: int = 0
    title: str = ""
    kind: Optional[str] = None
    room_id: Optional[int] = None
    room_number: Optional[int] = None
    assignee_email: str = ""


@dataclass
class TaskCompletedData(BaseEventData):
    task_id: int = 0
    title: str = ""
    kind: Optional[str] = None
    room_id: Optional[int] = None
    room_number: Optional[int] = None
    completed_by: str = ""


@dataclass
class TaskReopenedData(BaseEventData):
    task_id: int = 0
    title: str = ""


@dataclass
class RoomChargesPostedData(BaseEventData):
    room_id: int = 0
    room_number: int = 0
    rate: float = 0.0
    currency: str = ""
    created: int = 0
    skipped: int = 0


@dataclass
class FolioEntryAddedData(BaseEventData):
    notification_id: int = 0
    reservation_id: str = ""
    kind: str = ""
    amount: float = 0.0


@dataclass
class StayChangedData(BaseEventData):
    """Shared by booked / checked-in / checked-out / cancelled"""
    stay_id: str = ""
    room_id: int = 0
    room_number: int = 0
    user_email: str = ""
    guest_name: str = ""
    nights: int = 0
    start_date_key: str = ""
    end_date_key: str = ""
    actor_role: Optional[str] = None
