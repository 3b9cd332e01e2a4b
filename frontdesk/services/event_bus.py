"""
Front-desk event bus

Services publish after their change is committed; handlers run in the
publishing thread. Handler failures never reach the publisher: they are
logged and kept in a short failure log so the desk can see which side
effect (cleaning task, housekeeping update) did not happen.
"""
from typing import Callable, Deque, Dict, List, Any, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import logging
import threading
import uuid

from frontdesk.config import settings
from frontdesk.models.events import EventType

logger = logging.getLogger(__name__)

Handler = Callable[["Event"], None]


def to_event_type(value: Union[str, EventType]) -> EventType:
    """Known event type; unknown names raise ValueError"""
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError:
        raise ValueError(f"Unknown event type: {value}") from None


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


@dataclass
class Event:
    """Event envelope; ``data`` is the payload's to_dict()"""
    event_type: EventType
    timestamp: datetime
    data: Dict[str, Any]
    source: str  # publishing service
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        self.event_type = to_event_type(self.event_type)

    @property
    def topic(self) -> str:
        """``stay`` for ``stay.checked_out``"""
        return self.event_type.value.split(".", 1)[0]

    @property
    def room_id(self) -> Optional[int]:
        value = self.data.get("room_id")
        return value if isinstance(value, int) and not isinstance(value, bool) else None

    @property
    def stay_id(self) -> Optional[str]:
        return self.data.get("stay_id") or None


@dataclass
class FailedDelivery:
    """A handler that raised while handling an event"""
    event_id: str
    event_type: EventType
    handler: str
    error: str
    room_id: Optional[int] = None
    failed_at: datetime = field(default_factory=datetime.now)


class EventBus:
    """
    In-memory event bus

    Usage:
    1. bus.subscribe(EventType.STAY_CHECKED_OUT, handler)
    2. bus.publish(Event(...))
    3. bus.get_history(room_id=7) / bus.failed_deliveries()
    """

    def __init__(self, history_size: Optional[int] = None):
        size = history_size or settings.EVENT_HISTORY_SIZE
        self._subscribers: Dict[EventType, List[Handler]] = {}
        self._history: Deque[Event] = deque(maxlen=size)
        self._failures: Deque[FailedDelivery] = deque(maxlen=size)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Union[str, EventType], handler: Handler) -> None:
        """
        Subscribe a handler; subscribing it twice is a no-op

        Raises:
            ValueError: unknown event type
        """
        key = to_event_type(event_type)
        with self._lock:
            handlers = self._subscribers.setdefault(key, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.info(f"Handler {_handler_name(handler)} subscribed to {key.value}")

    def subscribe_many(self, handlers: Dict[EventType, Handler]) -> None:
        for event_type, handler in handlers.items():
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: Union[str, EventType], handler: Handler) -> None:
        key = to_event_type(event_type)
        with self._lock:
            handlers = self._subscribers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.info(f"Handler {_handler_name(handler)} unsubscribed from {key.value}")

    def publish(self, event: Event) -> int:
        """
        Deliver an event to its handlers in subscription order

        Returns:
            Number of handlers that completed without raising
        """
        with self._lock:
            self._history.append(event)
            handlers = list(self._subscribers.get(event.event_type, []))

        room = f" (room {event.room_id})" if event.room_id is not None else ""
        if handlers:
            logger.info(f"Publishing {event.event_type.value}{room} to {len(handlers)} handlers")

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Handler {_handler_name(handler)} failed on {event.event_type.value}{room}: {e}",
                    exc_info=True
                )
                with self._lock:
                    self._failures.append(FailedDelivery(
                        event_id=event.event_id,
                        event_type=event.event_type,
                        handler=_handler_name(handler),
                        error=str(e),
                        room_id=event.room_id,
                    ))
        return delivered

    def get_history(
        self,
        event_type: Optional[Union[str, EventType]] = None,
        room_id: Optional[int] = None,
        stay_id: Optional[str] = None,
        topic: Optional[str] = None,
        limit: int = 50,
    ) -> List[Event]:
        """
        Recent events, newest first

        Args:
            event_type: only this type
            room_id: only events about this room
            stay_id: only events about this stay
            topic: only this family, e.g. "stay" or "folio"
            limit: maximum number returned
        """
        key = to_event_type(event_type) if event_type else None
        with self._lock:
            history = list(self._history)

        matches = [
            e for e in reversed(history)
            if (key is None or e.event_type == key)
            and (room_id is None or e.room_id == room_id)
            and (stay_id is None or e.stay_id == stay_id)
            and (topic is None or e.topic == topic)
        ]
        return matches[:limit]

    def failed_deliveries(self, room_id: Optional[int] = None) -> List[FailedDelivery]:
        """Handler failures, newest first"""
        with self._lock:
            failures = list(self._failures)
        return [f for f in reversed(failures) if room_id is None or f.room_id == room_id]

    def subscriber_count(self, event_type: Union[str, EventType]) -> int:
        with self._lock:
            return len(self._subscribers.get(to_event_type(event_type), []))

    def reset(self) -> None:
        """Drop subscriptions, history and failures (tests)"""
        with self._lock:
            self._subscribers.clear()
            self._history.clear()
            self._failures.clear()
        logger.info("Event bus reset")


# Global event bus
event_bus = EventBus()
