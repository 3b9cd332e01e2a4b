"""
Front-desk event bus tests
"""
import pytest
from datetime import datetime

from frontdesk.models.events import EventType, StayChangedData, TaskCompletedData
from frontdesk.services.event_bus import EventBus, Event, to_event_type


def _checkout(room_id=7, stay_id="7||ana@guest.test::2025-01-01"):
    return Event(
        event_type=EventType.STAY_CHECKED_OUT,
        timestamp=datetime.now(),
        data=StayChangedData(stay_id=stay_id, room_id=room_id, room_number=101).to_dict(),
        source="stay_service"
    )


def _task_done(room_id=None):
    return Event(
        event_type="task.completed",
        timestamp=datetime.now(),
        data=TaskCompletedData(task_id=1, title="Clean", kind="HOUSEKEEPING", room_id=room_id).to_dict(),
        source="task_service"
    )


class TestEvent:
    """Event envelope"""

    def test_names_become_event_types(self):
        """Stored names resolve to the enum"""
        assert _task_done().event_type is EventType.TASK_COMPLETED

    def test_unknown_name_rejected(self):
        """Typos fail at construction"""
        with pytest.raises(ValueError, match="Unknown event type: stay.checkedout"):
            to_event_type("stay.checkedout")

    def test_room_and_stay(self):
        """Read from the payload"""
        event = _checkout()
        assert event.topic == "stay"
        assert event.room_id == 7
        assert event.stay_id == "7||ana@guest.test::2025-01-01"
        assert _task_done().room_id is None
        assert _task_done().stay_id is None

    def test_ids_unique(self):
        """Two events built in the same instant differ"""
        assert _checkout().event_id != _checkout().event_id


class TestEventBus:
    """Subscriptions and delivery"""

    @pytest.fixture
    def bus(self):
        return EventBus(history_size=10)

    def test_subscribe_and_publish(self, bus):
        """Handlers receive the event; delivered count returned"""
        received = []
        bus.subscribe(EventType.STAY_CHECKED_OUT, received.append)

        assert bus.publish(_checkout()) == 1
        assert received[0].data["room_number"] == 101

    def test_duplicate_subscription_ignored(self, bus):
        """Name and enum subscribe the same handler once"""
        received = []
        bus.subscribe("stay.checked_out", received.append)
        bus.subscribe(EventType.STAY_CHECKED_OUT, received.append)

        bus.publish(_checkout())
        assert len(received) == 1
        assert bus.subscriber_count(EventType.STAY_CHECKED_OUT) == 1

    def test_subscribe_many_and_unsubscribe(self, bus):
        """Mapping form; nothing delivered once removed"""
        received = []
        bus.subscribe_many({
            EventType.STAY_CHECKED_OUT: received.append,
            EventType.TASK_COMPLETED: received.append,
        })
        bus.unsubscribe(EventType.STAY_CHECKED_OUT, received.append)

        assert bus.publish(_checkout()) == 0
        assert bus.publish(_task_done()) == 1
        assert [e.event_type for e in received] == [EventType.TASK_COMPLETED]

    def test_unknown_subscription_rejected(self, bus):
        """Typos fail at subscribe time"""
        with pytest.raises(ValueError, match="Unknown event type"):
            bus.subscribe("stay.checkedout", print)

    def test_failing_handler_recorded(self, bus):
        """Other handlers still run; failure kept with the room"""
        received = []

        def create_cleaning_task(event):
            raise RuntimeError("inbox unavailable")

        bus.subscribe(EventType.STAY_CHECKED_OUT, create_cleaning_task)
        bus.subscribe(EventType.STAY_CHECKED_OUT, received.append)
        event = _checkout(room_id=7)

        assert bus.publish(event) == 1
        assert len(received) == 1

        failure = bus.failed_deliveries()[0]
        assert failure.event_id == event.event_id
        assert failure.event_type is EventType.STAY_CHECKED_OUT
        assert failure.handler.endswith("create_cleaning_task")
        assert failure.error == "inbox unavailable"
        assert bus.failed_deliveries(room_id=7) == [failure]
        assert bus.failed_deliveries(room_id=8) == []


class TestEventHistory:
    """Recent events"""

    def test_filters(self):
        """Newest first; by type, room, stay or topic"""
        bus = EventBus(history_size=10)
        first = _checkout(room_id=7)
        second = _task_done(room_id=8)
        third = _checkout(room_id=8, stay_id="8||bo@guest.test::2025-01-03")
        for event in (first, second, third):
            bus.publish(event)

        assert bus.get_history() == [third, second, first]
        assert bus.get_history(EventType.STAY_CHECKED_OUT) == [third, first]
        assert bus.get_history(room_id=8) == [third, second]
        assert bus.get_history(stay_id="7||ana@guest.test::2025-01-01") == [first]
        assert bus.get_history(topic="task") == [second]
        assert bus.get_history(limit=1) == [third]

    def test_bounded(self):
        """Oldest events fall off"""
        bus = EventBus(history_size=2)
        events = [_checkout() for _ in range(3)]
        for event in events:
            bus.publish(event)
        assert bus.get_history() == [events[2], events[1]]

    def test_reset(self):
        """Subscriptions, history and failures cleared"""
        bus = EventBus(history_size=10)

        def broken(event):
            raise RuntimeError("x")

        bus.subscribe(EventType.STAY_CHECKED_OUT, broken)
        bus.publish(_checkout())
        bus.reset()

        assert bus.subscriber_count(EventType.STAY_CHECKED_OUT) == 0
        assert bus.get_history() == []
        assert bus.failed_deliveries() == []
