"""
frontdesk/hotel/codecs/task_codec.py

Hotel tasks stored in Notification.message as ``TASK|<json>``.

Plain-text notifications written before tasks existed stay readable: any
message that is not a well-formed task decodes to a title-only task.
"""
import json
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from tagcore.dates import parse_iso_datetime, to_iso_string

PREFIX = "TASK|"
TITLE_MAX = 140
UNTITLED = "Untitled task"


class TaskKind(str, Enum):
    HOUSEKEEPING = "HOUSEKEEPING"
    MAINTENANCE = "MAINTENANCE"
    GUEST_REQUEST = "GUEST_REQUEST"
    FRONT_DESK = "FRONT_DESK"
    OTHER = "OTHER"


TASK_KINDS = [kind.value for kind in TaskKind]


@dataclass
class TaskActor:
    email: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "name": self.name}


@dataclass
class TaskNote:
    at: str
    text: str
    by: Optional[TaskActor] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"at": self.at}
        if self.by is not None:
            out["by"] = self.by.to_dict()
        out["text"] = self.text
        return out


@dataclass
class TaskPayload:
    title: str
    v: int = 1
    description: Optional[str] = None
    kind: Optional[str] = None
    hotel_id: Optional[str] = None
    room_id: Optional[str] = None
    room_number: Optional[float] = None
    reservation_id: Optional[str] = None
    due_at: Optional[str] = None
    created_by: Optional[TaskActor] = None
    notes: Optional[List[TaskNote]] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape; unset optional fields are left out."""
        out: Dict[str, Any] = {"v": self.v, "title": self.title}
        optional = (
            ("description", self.description),
            ("kind", self.kind.value if isinstance(self.kind, Enum) else self.kind),
            ("hotelId", self.hotel_id),
            ("roomId", self.room_id),
            ("roomNumber", self.room_number),
            ("reservationId", self.reservation_id),
            ("dueAt", self.due_at),
            ("createdBy", self.created_by.to_dict() if self.created_by else None),
            ("notes", [note.to_dict() for note in self.notes] if self.notes is not None else None),
        )
        for key, value in optional:
            if value is not None:
                out[key] = value
        return out


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON constant {name}")


def _loads(raw: str) -> Optional[Any]:
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return value


def _as_actor(value: Any) -> Optional[TaskActor]:
    if not isinstance(value, dict):
        return None
    return TaskActor(email=_as_str(value.get("email")), name=_as_str(value.get("name")))


def _as_note(value: Any) -> Optional[TaskNote]:
    if not isinstance(value, dict):
        return None
    text = (_as_str(value.get("text")) or "").strip()
    at = _as_str(value.get("at"))
    if not text or not at or parse_iso_datetime(at) is None:
        return None
    return TaskNote(at=at, text=text, by=_as_actor(value.get("by")))


def encode_task_message(payload: TaskPayload) -> str:
    return PREFIX + json.dumps(payload.to_dict(), separators=(",", ":"), ensure_ascii=False)


def is_task_message(message: Optional[str]) -> bool:
    """True for a ``TASK|`` message whose body is a JSON object."""
    if not isinstance(message, str) or not message.startswith(PREFIX):
        return False
    return isinstance(_loads(message[len(PREFIX):]), dict)


def is_legacy_task_message(message: Optional[str]) -> bool:
    return not is_task_message(message)


def decode_task_message(message: Optional[str]) -> TaskPayload:
    """
    Decode a task notification message.

    Messages without the prefix, with invalid JSON, or with a non-object
    body become ``TaskPayload(title=<whole message>)``. Otherwise every
    field is type-checked on its own; wrong types are dropped, an unknown
    kind becomes None and invalid notes are filtered out.
    """
    text = message if isinstance(message, str) else ""
    fallback_title = text.strip() or UNTITLED

    parsed = _loads(text[len(PREFIX):]) if text.startswith(PREFIX) else None
    if not isinstance(parsed, dict):
        return TaskPayload(title=fallback_title)

    title = ((_as_str(parsed.get("title")) or "").strip() or fallback_title)[:TITLE_MAX]
    kind = _as_str(parsed.get("kind"))

    notes_raw = parsed.get("notes")
    notes = None
    if isinstance(notes_raw, list):
        notes = [note for note in (_as_note(item) for item in notes_raw) if note is not None]

    return TaskPayload(
        title=title,
        description=_as_str(parsed.get("description")),
        kind=kind if kind in TASK_KINDS else None,
        hotel_id=_as_str(parsed.get("hotelId")),
        room_id=_as_str(parsed.get("roomId")),
        room_number=_as_number(parsed.get("roomNumber")),
        reservation_id=_as_str(parsed.get("reservationId")),
        due_at=_as_str(parsed.get("dueAt")),
        created_by=_as_actor(parsed.get("createdBy")),
        notes=notes,
    )


def append_task_note(
    payload: TaskPayload, text: str, at: Optional[datetime] = None, by: Optional[TaskActor] = None
) -> TaskPayload:
    """Return a copy with one more note; blank text leaves the payload as is."""
    if not isinstance(text, str):
        raise TypeError("note text must be a string")
    body = text.strip()
    if not body:
        return payload
    note = TaskNote(at=to_iso_string(at or datetime.now(timezone.utc)), text=body, by=by)
    return replace(payload, notes=[*(payload.notes or []), note])
