"""
Customer registration service tests
"""
from datetime import datetime, timezone

import pytest

from frontdesk.hotel.codecs.customer_tracking import parse_customer_tracking_message
from frontdesk.hotel.services.customer_service import CustomerService
from frontdesk.models.events import EventType
from frontdesk.models.ontology import Notification, NotificationType, User, UserRole
from frontdesk.models.schemas import CustomerRegistrationCreate

NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _make_registration(**overrides):
    values = dict(
        email="Ana@Guest.test",
        name="Ana Lima",
        phone="+351 912 345 678",
        source="WALK_IN",
        consent={"sms_operational": True, "marketing": True},
    )
    values.update(overrides)
    return CustomerRegistrationCreate(**values)


class TestRegisterCustomer:
    """Staff-captured registrations"""

    def test_creates_user_and_notification(self, db_session, receptionist, publisher, published_events):
        """New customer plus tracking notification"""
        result = CustomerService(db_session, publisher).register_customer(
            receptionist, _make_registration(), now=NOW
        )

        assert result["created"] is True
        user = result["user"]
        assert user.email == "ana@guest.test"
        assert user.role == UserRole.USER
        assert user.phone == "+351912345678"

        notification = result["notification"]
        assert notification.type == NotificationType.CUSTOMER_REGISTRATION.value
        parsed = parse_customer_tracking_message(notification.message)
        assert parsed.summary == "Customer registered (Walk-in) by front@hotel.test"
        assert parsed.tags["SOURCE"] == "WALK_IN"
        assert parsed.tags["CONSENT_AT"] == "2025-01-02T03:04:05.000Z"

        assert published_events[0].event_type == EventType.CUSTOMER_REGISTERED.value
        assert published_events[0].data["created"] is True
        assert published_events[0].data["notification_id"] == notification.id

    def test_existing_customer_updated(self, db_session, receptionist, publisher):
        """Second registration updates, never duplicates"""
        service = CustomerService(db_session, publisher)
        service.register_customer(receptionist, _make_registration())
        result = service.register_customer(receptionist, _make_registration(name="Ana M. Lima", phone=None,
                                                                            consent={}))

        assert result["created"] is False
        assert result["user"].name == "Ana M. Lima"
        assert result["user"].phone == "+351912345678"
        assert db_session.query(User).filter(User.email == "ana@guest.test").count() == 1
        assert db_session.query(Notification).count() == 2

    def test_custom_summary(self, db_session, manager, publisher):
        """Caller-supplied summary line"""
        result = CustomerService(db_session, publisher).register_customer(
            manager, _make_registration(source="OTA"), summary="Imported from channel manager"
        )
        assert result["notification"].message.startswith("Imported from channel manager\nCUST:V=1")

    def test_role_not_allowed(self, db_session, publisher, published_events):
        """Delivery staff cannot register customers"""
        courier = User(email="courier@hotel.test", name="Courier", role=UserRole.DELIVERY)
        db_session.add(courier)
        db_session.commit()

        with pytest.raises(ValueError, match="Role DELIVERY may not register customers"):
            CustomerService(db_session, publisher).register_customer(courier, _make_registration())
        assert db_session.query(Notification).count() == 0
        assert published_events == []


class TestRegistrationReport:
    """Listing and consent rates"""

    def test_list_and_filter(self, db_session, receptionist, publisher):
        """Decoded records, optionally per customer"""
        service = CustomerService(db_session, publisher)
        service.register_customer(receptionist, _make_registration())
        service.register_customer(receptionist, _make_registration(email="bo@guest.test", name="Bo", phone=None,
                                                                   consent={}, source="PHONE"))

        assert [r.customer_email for r in service.list_registrations()] == ["ana@guest.test", "bo@guest.test"]
        assert [r.source for r in service.list_registrations(" BO@guest.test ")] == ["PHONE"]

    def test_unreadable_skipped(self, db_session, receptionist, publisher):
        """Messages without tracking tags are ignored"""
        db_session.add(Notification(user_email="x@y.z", type=NotificationType.CUSTOMER_REGISTRATION.value,
                                    message="hand-written note"))
        db_session.commit()
        assert CustomerService(db_session, publisher).list_registrations() == []

    def test_report(self, db_session, receptionist, publisher):
        """Per-source counts and rounded percentages"""
        service = CustomerService(db_session, publisher)
        service.register_customer(receptionist, _make_registration())
        service.register_customer(receptionist, _make_registration(email="bo@guest.test", name="Bo", phone=None,
                                                                   consent={}, source="PHONE"))
        service.register_customer(receptionist, _make_registration(email="cy@guest.test", name="Cy", phone=None,
                                                                   consent={"email_operational": True}))

        report = service.registration_report()
        assert report["total"] == 3
        assert report["by_source"]["WALK_IN"] == 2
        assert report["by_source"]["PHONE"] == 1
        assert report["by_source"]["OTA"] == 0
        assert report["sms_operational_rate"] == 33.3
        assert report["email_operational_rate"] == 33.3
        assert report["marketing_rate"] == 33.3

    def test_empty_report(self, db_session, publisher):
        """No registrations, zero rates"""
        report = CustomerService(db_session, publisher).registration_report()
        assert report["total"] == 0
        assert report["marketing_rate"] == 0.0
