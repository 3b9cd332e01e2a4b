# ORM models
from frontdesk.models.ontology import (
    Hotel, Room, User, Reservation, Notification, Order
)

__all__ = [
    'Hotel', 'Room', 'User', 'Reservation', 'Notification', 'Order'
]
