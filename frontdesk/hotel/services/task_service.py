"""
Task service
Tasks are TASK notifications; UNREAD is open, READ is done
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from frontdesk.hotel.codecs.task_codec import (
    TaskActor, TaskKind, TaskPayload, append_task_note, decode_task_message,
    encode_task_message, is_legacy_task_message,
)
from frontdesk.models.events import EventType, TaskCompletedData, TaskCreatedData, TaskReopenedData
from frontdesk.models.ontology import (
    Notification, NotificationPriority, NotificationStatus, NotificationType, Room,
)
from frontdesk.models.schemas import TaskCreate
from frontdesk.services.event_bus import Event, event_bus
from tagcore.dates import to_iso_string

logger = logging.getLogger(__name__)


def _int_or_none(value: Optional[str]) -> Optional[int]:
    text = "" if value is None else str(value)
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


class TaskService:
    """Hotel task operations"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def get_task(self, task_id: int) -> Optional[Notification]:
        return self.db.query(Notification).filter(
            Notification.id == task_id,
            Notification.type == NotificationType.TASK.value
        ).first()

    def _require_task(self, task_id: int) -> Notification:
        task = self.get_task(task_id)
        if not task:
            raise ValueError(f"Task {task_id} not found")
        return task

    def create_task(self, data: TaskCreate, assignee_email: str,
                    created_by: Optional[TaskActor] = None) -> Notification:
        """Create a task notification for the assignee"""
        room = None
        hotel_id = data.hotel_id
        if data.room_id is not None:
            room = self.db.query(Room).filter(Room.id == data.room_id).first()
            if not room:
                raise ValueError(f"Room {data.room_id} not found")
            hotel_id = hotel_id or room.hotel_id

        payload = TaskPayload(
            title=data.title,
            description=data.description,
            kind=data.kind.value if data.kind else None,
            hotel_id=_str_or_none(hotel_id),
            room_id=_str_or_none(data.room_id),
            room_number=room.room_number if room else None,
            reservation_id=_str_or_none(data.reservation_id),
            due_at=to_iso_string(data.due_at) if data.due_at else None,
            created_by=created_by,
        )
        priority = NotificationPriority.HIGH if data.kind == TaskKind.MAINTENANCE else NotificationPriority.MEDIUM
        task = Notification(
            user_email=assignee_email.strip().lower(),
            type=NotificationType.TASK.value,
            message=encode_task_message(payload),
            status=NotificationStatus.UNREAD,
            priority=priority,
        )
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)

        logger.info(f"Task {task.id} '{payload.title}' created for {task.user_email}")

        self._publish_event(Event(
            event_type=EventType.TASK_CREATED,
            timestamp=datetime.now(),
            data=TaskCreatedData(
                task_id=task.id,
                title=payload.title,
                kind=payload.kind,
                room_id=data.room_id,
                room_number=payload.room_number,
                assignee_email=task.user_email,
            ).to_dict(),
            source="task_service"
        ))
        return task

    def list_tasks(self, user_email: Optional[str] = None,
                   status: Optional[NotificationStatus] = None) -> List[Dict[str, Any]]:
        """
        Decoded tasks, newest first

        Each row carries the decoded payload and a ``legacy`` flag for
        plain-text messages written before the task format.
        """
        query = self.db.query(Notification).filter(Notification.type == NotificationType.TASK.value)
        if user_email:
            query = query.filter(Notification.user_email == user_email.strip().lower())
        if status:
            query = query.filter(Notification.status == status)

        return [
            {
                "id": task.id,
                "user_email": task.user_email,
                "status": task.status,
                "priority": task.priority,
                "task": decode_task_message(task.message),
                "legacy": is_legacy_task_message(task.message),
            }
            for task in query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
        ]

    def add_note(self, task_id: int, text: str, by: Optional[TaskActor] = None,
                 now: Optional[datetime] = None) -> TaskPayload:
        """Append a note; blank text changes nothing"""
        task = self._require_task(task_id)
        payload = decode_task_message(task.message)
        updated = append_task_note(payload, text, at=now, by=by)
        if updated is payload:
            return payload
        task.message = encode_task_message(updated)
        self.db.commit()
        logger.info(f"Note added to task {task.id}")
        return updated

    def complete_task(self, task_id: int, note: Optional[str] = None,
                      by: Optional[TaskActor] = None, now: Optional[datetime] = None) -> Notification:
        """Mark a task done, optionally with a closing note"""
        task = self._require_task(task_id)
        if task.status == NotificationStatus.READ:
            raise ValueError(f"Task {task_id} is already completed")

        payload = decode_task_message(task.message)
        if note:
            updated = append_task_note(payload, note, at=now, by=by)
            if updated is not payload:
                payload = updated
                task.message = encode_task_message(payload)

        task.status = NotificationStatus.READ
        self.db.commit()
        self.db.refresh(task)

        completed_by = (by.email if by and by.email else "") or task.user_email
        logger.info(f"Task {task.id} '{payload.title}' completed by {completed_by}")

        self._publish_event(Event(
            event_type=EventType.TASK_COMPLETED,
            timestamp=datetime.now(),
            data=TaskCompletedData(
                task_id=task.id,
                title=payload.title,
                kind=payload.kind,
                room_id=_int_or_none(payload.room_id),
                room_number=int(payload.room_number) if payload.room_number is not None else None,
                completed_by=completed_by,
            ).to_dict(),
            source="task_service"
        ))
        return task

    def reopen_task(self, task_id: int) -> Notification:
        task = self._require_task(task_id)
        if task.status != NotificationStatus.READ:
            raise ValueError(f"Task {task_id} is still open")

        task.status = NotificationStatus.UNREAD
        self.db.commit()
        self.db.refresh(task)

        payload = decode_task_message(task.message)
        logger.info(f"Task {task.id} '{payload.title}' reopened")

        self._publish_event(Event(
            event_type=EventType.TASK_REOPENED,
            timestamp=datetime.now(),
            data=TaskReopenedData(task_id=task.id, title=payload.title).to_dict(),
            source="task_service"
        ))
        return task
