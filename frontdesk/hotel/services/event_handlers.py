"""
Event handlers
Side effects of front-desk events
"""
from typing import Callable
import logging

from frontdesk.config import settings
from frontdesk.database import SessionLocal
from frontdesk.hotel.codecs.task_codec import TaskActor, TaskKind
from frontdesk.models.events import EventType
from frontdesk.models.schemas import TaskCreate
from frontdesk.services.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class EventHandlers:
    """
    Event handler set

    Injectable for tests:
    - db_session_factory: session factory
    - event_publisher: publisher handed to the services the handlers call
    """

    def __init__(self, db_session_factory: Callable = None,
                 event_publisher: Callable[[Event], None] = None):
        self._db_session_factory = db_session_factory or SessionLocal
        self._event_publisher = event_publisher
        self._registered = False

    def _get_db(self):
        return self._db_session_factory()

    def handle_task_completed(self, event: Event) -> None:
        """
        Completed housekeeping task: mark its room clean

        Other task kinds and tasks without a room are ignored.
        """
        from frontdesk.hotel.services.housekeeping_service import HousekeepingService

        data = event.data
        if data.get('kind') != TaskKind.HOUSEKEEPING.value:
            return
        room_id = data.get('room_id')
        if not room_id:
            logger.warning(f"Housekeeping task {data.get('task_id')} completed without a room")
            return

        db = self._get_db()
        try:
            HousekeepingService(db, self._event_publisher).mark_clean(room_id)
            logger.info(f"Room {data.get('room_number')} marked clean after task {data.get('task_id')}")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to mark room {room_id} clean: {e}", exc_info=True)
        finally:
            db.close()

    def handle_stay_checked_out(self, event: Event) -> None:
        """Checkout: open a cleaning task for the housekeeping inbox"""
        from frontdesk.hotel.services.task_service import TaskService

        assignee = settings.HOUSEKEEPING_TASK_EMAIL.strip()
        if not assignee:
            return

        data = event.data
        room_id = data.get('room_id')
        if not room_id:
            logger.warning("Checkout event without room_id")
            return

        db = self._get_db()
        try:
            task = TaskService(db, self._event_publisher).create_task(
                TaskCreate(
                    title=f"Clean room {data.get('room_number')} after checkout",
                    description=f"Previous guest: {data.get('guest_name') or data.get('user_email')}",
                    kind=TaskKind.HOUSEKEEPING,
                    room_id=room_id,
                ),
                assignee_email=assignee,
                created_by=TaskActor(email=None, name="system"),
            )
            logger.info(f"Auto-created cleaning task {task.id} for room {data.get('room_number')}")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create cleaning task: {e}", exc_info=True)
        finally:
            db.close()

    def _subscriptions(self):
        return {
            EventType.TASK_COMPLETED: self.handle_task_completed,
            EventType.STAY_CHECKED_OUT: self.handle_stay_checked_out,
        }

    def register_handlers(self, event_bus_instance=None) -> None:
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        bus.subscribe_many(self._subscriptions())

        self._registered = True
        logger.info("Event handlers registered")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """Remove the subscriptions (tests)"""
        bus = event_bus_instance or event_bus
        for event_type, handler in self._subscriptions().items():
            bus.unsubscribe(event_type, handler)

        self._registered = False
        logger.info("Event handlers unregistered")


# Global handler set
event_handlers = EventHandlers()


def register_event_handlers():
    """Subscribe the global handlers (application start-up)"""
    event_handlers.register_handlers()
