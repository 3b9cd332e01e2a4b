"""
Pydantic schemas
Caller-side validation: input is checked here before any patch is built
"""
import re
from datetime import date, datetime
from typing import Dict, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from frontdesk.config import settings
from frontdesk.hotel.codecs.customer_tracking import (
    ConsentMethod, CustomerSource, is_probably_valid_phone, normalize_phone
)
from frontdesk.hotel.codecs.folio_entries import FolioKind, PaymentMethod
from frontdesk.hotel.codecs.hotel_settings import is_valid_hours
from frontdesk.hotel.codecs.housekeeping import HKStatus
from frontdesk.hotel.codecs.task_codec import TaskKind, TITLE_MAX

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============== Housekeeping / rates ==============

class HousekeepingPatch(BaseModel):
    """Only the fields that are set are applied; None clears timestamp / reason"""
    status: Optional[HKStatus] = None
    in_cleaning_list: Optional[bool] = None
    last_cleaned_at: Optional[Union[datetime, str]] = None
    reason: Optional[str] = None


class RoomRateUpdate(BaseModel):
    """Override must be a positive amount, or None to inherit the hotel rate"""
    override_nightly_rate: Optional[float] = None

    @field_validator('override_nightly_rate', mode='before')
    @classmethod
    def blank_clears(cls, v):
        return _blank_to_none(v)

    @field_validator('override_nightly_rate')
    @classmethod
    def positive_or_cleared(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not v > 0:
            raise ValueError("Use a positive number or clear the override")
        return v


# ============== Hotel settings ==============

class OpeningHoursUpdate(BaseModel):
    breakfast: Optional[str] = None
    restaurant: Optional[str] = None
    room_service: Optional[str] = None

    @field_validator('breakfast', 'restaurant', 'room_service')
    @classmethod
    def check_hours(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_hours(v):
            raise ValueError("Invalid hours format. Use 07:00-10:30, multiple ranges with commas, or 24/7.")
        return v.strip() if v is not None else v


class HotelSettingsPatch(BaseModel):
    base_nightly_rate: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, max_length=10)
    auto_post_room_charges: Optional[bool] = None
    checkout_requires_paid_folio: Optional[bool] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    hotel_address: Optional[str] = None
    hotel_phone: Optional[str] = None
    hotel_email: Optional[str] = None
    hotel_website: Optional[str] = None
    vat_number: Optional[str] = None
    opening_hours: Optional[OpeningHoursUpdate] = None
    tags: Optional[Dict[str, Optional[str]]] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None

    @field_validator('hotel_email')
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if v and v.strip() and not EMAIL_PATTERN.match(v.strip()):
            raise ValueError("Invalid hotel email")
        return v


# ============== Stays ==============

class StayBookingCreate(BaseModel):
    room_id: int
    user_email: str = Field(..., max_length=200)
    guest_name: str = Field("", max_length=100)
    guest_phone: Optional[str] = None
    start_date: date
    nights: int = Field(..., ge=1)
    guests: int = Field(default=1, ge=1)

    @field_validator('user_email')
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email")
        return v

    @field_validator('nights')
    @classmethod
    def check_nights(cls, v: int) -> int:
        if v > settings.MAX_STAY_NIGHTS:
            raise ValueError(f"Nights must be between 1 and {settings.MAX_STAY_NIGHTS}")
        return v


# ============== Customers ==============

class ConsentInput(BaseModel):
    sms_operational: bool = False
    email_operational: bool = False
    marketing: bool = False
    method: ConsentMethod = ConsentMethod.VERBAL


class UtmInput(BaseModel):
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None


class RegistrationContextInput(BaseModel):
    page: Optional[str] = None
    referrer: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    user_agent: Optional[str] = None
    utm: Optional[UtmInput] = None


class CustomerRegistrationCreate(BaseModel):
    """Walk-in / phone / OTA ... registration captured by staff"""
    email: str
    name: str
    phone: Optional[str] = None
    source: CustomerSource
    consent: ConsentInput = Field(default_factory=ConsentInput)
    context: Optional[RegistrationContextInput] = None

    @field_validator('email')
    @classmethod
    def check_email(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email")
        return v

    @field_validator('name')
    @classmethod
    def check_name(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 2:
            raise ValueError("Name is required")
        return v

    @field_validator('phone')
    @classmethod
    def normalize(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return normalize_phone(v) or None

    @model_validator(mode='after')
    def check_phone_consent(self):
        if self.consent.sms_operational and not self.phone:
            raise ValueError("SMS consent requires a phone number")
        if self.phone and not is_probably_valid_phone(self.phone):
            raise ValueError("Invalid phone number")
        return self


# ============== Tasks ==============

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    kind: Optional[TaskKind] = None
    hotel_id: Optional[int] = None
    room_id: Optional[int] = None
    reservation_id: Optional[int] = None
    due_at: Optional[datetime] = None

    @field_validator('title')
    @classmethod
    def check_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v[:TITLE_MAX]

    @field_validator('description', mode='before')
    @classmethod
    def blank_description(cls, v):
        return _blank_to_none(v)


# ============== Folio ==============

class FolioEntryCreate(BaseModel):
    reservation_id: int
    kind: FolioKind
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=200)
    method: Optional[PaymentMethod] = None
    reference: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode='after')
    def payment_method(self):
        if self.kind == FolioKind.PAYMENT and self.method is None:
            self.method = PaymentMethod.CASH
        if self.kind == FolioKind.CHARGE:
            self.method = None
        return self
