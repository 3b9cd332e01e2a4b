"""
frontdesk/hotel/domain/__init__.py

Hotel domain layer: stay grouping and housekeeping policy
"""
from frontdesk.hotel.domain.stay_grouping import (
    NightRow,
    StayBlock,
    StayNight,
    group_reservations_into_stays,
)

__all__ = [
    "NightRow",
    "StayBlock",
    "StayNight",
    "group_reservations_into_stays",
]
