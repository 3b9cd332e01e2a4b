"""
frontdesk/hotel/domain/rules/housekeeping_rules.py

Housekeeping business policy.

The codec only stores what it is given; which fields change for a staff
action is decided here:
- mark clean: CLEAN, off the cleaning list, cleaned now, reason cleared
- mark dirty: DIRTY, on the cleaning list, last-cleaned time untouched
- set status: list membership follows the status, MAINTENANCE and
  OUT_OF_ORDER carry a reason
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from frontdesk.hotel.codecs.housekeeping import HKStatus, HousekeepingMeta, to_hk_status
from tagcore.dates import to_iso_string

REASON_REQUIRED = frozenset({HKStatus.MAINTENANCE, HKStatus.OUT_OF_ORDER})


def derive_cleaning_list_membership(status: HKStatus) -> bool:
    """Only dirty rooms belong on the cleaning list."""
    return to_hk_status(status) == HKStatus.DIRTY


def requires_reason(status: HKStatus) -> bool:
    return to_hk_status(status) in REASON_REQUIRED


def _now_iso(now: Optional[datetime]) -> str:
    return to_iso_string(now or datetime.now(timezone.utc))


def mark_clean_patch(now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "status": HKStatus.CLEAN,
        "in_cleaning_list": derive_cleaning_list_membership(HKStatus.CLEAN),
        "last_cleaned_at": _now_iso(now),
        "reason": None,
    }


def mark_dirty_patch() -> Dict[str, Any]:
    return {
        "status": HKStatus.DIRTY,
        "in_cleaning_list": derive_cleaning_list_membership(HKStatus.DIRTY),
    }


def toggle_cleaning_list_patch(current: HousekeepingMeta) -> Dict[str, Any]:
    return {"in_cleaning_list": not current.in_cleaning_list}


def set_status_patch(
    status: HKStatus,
    reason: Optional[str] = None,
    current: Optional[HousekeepingMeta] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Patch for an explicit status choice.

    Args:
        status: target status
        reason: free text, kept only for statuses that need one
        current: the room's stored state; re-setting the same status
            without a reason keeps the stored one
        now: clock used when the room becomes CLEAN

    Raises:
        ValueError: unknown status, or a reason-carrying status without one
    """
    target = to_hk_status(status)
    if target is None:
        raise ValueError(f"Unknown housekeeping status: {status}")

    text = (reason or "").strip()
    if not text and current is not None and to_hk_status(current.status) == target:
        text = (current.reason or "").strip()
    if target in REASON_REQUIRED and not text:
        raise ValueError(f"A reason is required for {target.value}")

    patch: Dict[str, Any] = {
        "status": target,
        "in_cleaning_list": derive_cleaning_list_membership(target),
        "reason": text if target in REASON_REQUIRED else None,
    }
    if target == HKStatus.CLEAN:
        patch["last_cleaned_at"] = _now_iso(now)
    return patch
