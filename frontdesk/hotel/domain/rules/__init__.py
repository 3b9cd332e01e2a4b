"""
frontdesk/hotel/domain/rules/ - front-desk business rules

- housekeeping: which fields change for each staff action
"""
from frontdesk.hotel.domain.rules.housekeeping_rules import (
    derive_cleaning_list_membership,
    mark_clean_patch,
    mark_dirty_patch,
    set_status_patch,
    toggle_cleaning_list_patch,
)

__all__ = [
    "derive_cleaning_list_membership",
    "mark_clean_patch",
    "mark_dirty_patch",
    "set_status_patch",
    "toggle_cleaning_list_patch",
]
