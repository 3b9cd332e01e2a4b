"""
ORM objects for the front desk

Rows expose plain string fields (room special requests, hotel description,
notification message, order note). Structured state is packed into those
fields by the codecs in frontdesk.hotel.codecs, so no migration is needed
when the structured state grows.
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey, Text,
    Enum as SQLEnum, Boolean, JSON
)
from sqlalchemy.orm import relationship
from frontdesk.database import Base


# ============== Enums ==============

class ReservationStatus(str, Enum):
    """Per-night reservation status"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"      # checked in
    COMPLETED = "COMPLETED"      # checked out
    CANCELLED = "CANCELLED"


class OrderStatus(str, Enum):
    PREPARING = "PREPARING"
    UNASSIGNED = "UNASSIGNED"
    COLLECTED = "COLLECTED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NotificationType(str, Enum):
    """Notification kinds; the message format depends on the kind"""
    TASK = "TASK"                                      # TASK|<json>
    FOLIO = "FOLIO"                                    # FOLIO|<json>
    CUSTOMER_REGISTRATION = "CUSTOMER_REGISTRATION"    # CUST:KEY=VALUE lines
    GENERAL = "GENERAL"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    WAITER = "WAITER"            # reception
    DELIVERY = "DELIVERY"
    USER = "USER"                # guest / customer


# ============== Objects ==============

class Hotel(Base):
    """Hotel; settings are embedded in the description"""
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    rooms = relationship("Room", back_populates="hotel")


class Room(Base):
    """Room; housekeeping and rate tags live in special_requests"""
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False)
    room_number = Column(Integer, nullable=False)
    reserved = Column(Boolean, default=False)          # occupied right now
    special_requests = Column(JSON, default=list)      # HK:/RATE: tags and free notes
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    hotel = relationship("Hotel", back_populates="rooms")
    reservations = relationship("Reservation", back_populates="room")


class User(Base):
    """Staff member or customer"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(200), unique=True, nullable=False, index=True)
    name = Column(String(100), default="")
    phone = Column(String(30))
    role = Column(SQLEnum(UserRole), default=UserRole.USER)
    created_at = Column(DateTime, default=datetime.utcnow)


class Reservation(Base):
    """One row per night; stays are derived by grouping"""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"))
    user_email = Column(String(200), nullable=False, index=True)
    guest_name = Column(String(100), default="")
    guest_phone = Column(String(30))
    reservation_time = Column(DateTime, nullable=False)
    num_of_diners = Column(Integer, default=1)
    status = Column(SQLEnum(ReservationStatus), default=ReservationStatus.PENDING)
    created_at = Column(DateTime, default=datetime.utcnow)

    room = relationship("Room", back_populates="reservations")


class Notification(Base):
    """Notification; tasks, folio entries and registrations are encoded in message"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_email = Column(String(200), nullable=False, index=True)
    type = Column(String(40), default=NotificationType.GENERAL.value)
    message = Column(Text, default="")
    status = Column(SQLEnum(NotificationStatus), default=NotificationStatus.UNREAD)
    priority = Column(SQLEnum(NotificationPriority), default=NotificationPriority.LOW)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Order(Base):
    """Order; nightly room charges are orders carrying a marker note"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    order_number = Column(String(80), unique=True, nullable=False)
    note = Column(Text)
    total = Column(Float, default=0)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PREPARING)
    user_email = Column(String(200), default="")
    user_name = Column(String(100), default="")
    user_phone = Column(String(30), default="")
    cart = Column(JSON, default=list)
    order_date = Column(DateTime, default=datetime.utcnow)
    paid = Column(Boolean, default=False)
