"""
Customer registration service
Staff-captured registrations; the audit trail is a CUSTOMER_REGISTRATION notification
"""
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from frontdesk.config import settings
from frontdesk.hotel.codecs.customer_tracking import (
    CUSTOMER_SOURCE_LABEL, CustomerConsent, CustomerRegistrationContext,
    CustomerRegistrationTracking, CustomerSource, CustomerUtm,
    encode_customer_registration_tracking, parse_customer_tracking_message,
    tags_to_tracking,
)
from frontdesk.models.events import CustomerRegisteredData, EventType
from frontdesk.models.ontology import (
    Notification, NotificationPriority, NotificationStatus, NotificationType, User, UserRole,
)
from frontdesk.models.schemas import CustomerRegistrationCreate
from frontdesk.services.event_bus import Event, event_bus
from tagcore.dates import to_iso_string

logger = logging.getLogger(__name__)


def _role_value(role) -> str:
    return role.value if hasattr(role, "value") else str(role or "")


class CustomerService:
    """Customer registration and tracking report"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def _build_context(self, data: CustomerRegistrationCreate) -> CustomerRegistrationContext:
        if data.context is None:
            return CustomerRegistrationContext()
        ctx = data.context
        utm = CustomerUtm(**ctx.utm.model_dump()) if ctx.utm is not None else None
        return CustomerRegistrationContext(
            page=ctx.page,
            referrer=ctx.referrer,
            locale=ctx.locale,
            timezone=ctx.timezone,
            user_agent=ctx.user_agent,
            utm=utm,
        )

    def register_customer(self, actor: User, data: CustomerRegistrationCreate,
                          summary: Optional[str] = None,
                          now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Register (or update) a customer on behalf of a staff member

        Args:
            actor: staff user doing the registration
            data: validated registration input
            summary: optional human line for the notification
            now: consent capture time, defaults to the current time

        Returns:
            dict with user, notification and created flag
        """
        actor_role = _role_value(actor.role)
        if actor_role not in settings.customer_registration_roles:
            raise ValueError(f"Role {actor_role or 'unknown'} may not register customers")

        customer = self.db.query(User).filter(User.email == data.email).first()
        created = customer is None
        if created:
            customer = User(email=data.email, name=data.name, phone=data.phone, role=UserRole.USER)
            self.db.add(customer)
        else:
            customer.name = data.name
            if data.phone:
                customer.phone = data.phone

        tracking = CustomerRegistrationTracking(
            source=data.source.value,
            actor_email=actor.email,
            actor_role=actor_role,
            customer_email=data.email,
            customer_name=data.name,
            phone=data.phone,
            consent=CustomerConsent(
                sms_operational=data.consent.sms_operational,
                email_operational=data.consent.email_operational,
                marketing=data.consent.marketing,
                method=data.consent.method.value,
                captured_at=to_iso_string(now or datetime.now(timezone.utc)),
            ),
            context=self._build_context(data),
        )
        if summary is None:
            summary = f"Customer registered ({CUSTOMER_SOURCE_LABEL[data.source]}) by {actor.email}"

        notification = Notification(
            user_email=data.email,
            type=NotificationType.CUSTOMER_REGISTRATION.value,
            message=encode_customer_registration_tracking(tracking, summary),
            status=NotificationStatus.UNREAD,
            priority=NotificationPriority.LOW,
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(customer)
        self.db.refresh(notification)

        logger.info(
            f"Customer {data.email} {'registered' if created else 'updated'} "
            f"via {data.source.value} by {actor.email}"
        )

        self._publish_event(Event(
            event_type=EventType.CUSTOMER_REGISTERED,
            timestamp=datetime.now(),
            data=CustomerRegisteredData(
                customer_email=data.email,
                source=data.source.value,
                actor_email=actor.email,
                created=created,
                notification_id=notification.id,
            ).to_dict(),
            source="customer_service"
        ))

        return {"user": customer, "notification": notification, "created": created}

    def list_registrations(self, customer_email: Optional[str] = None) -> List[CustomerRegistrationTracking]:
        """Decoded registrations, oldest first; unreadable messages are skipped"""
        query = self.db.query(Notification).filter(
            Notification.type == NotificationType.CUSTOMER_REGISTRATION.value
        )
        if customer_email:
            query = query.filter(Notification.user_email == customer_email.strip().lower())

        records = []
        for notification in query.order_by(Notification.created_at, Notification.id).all():
            tracking = tags_to_tracking(parse_customer_tracking_message(notification.message).tags)
            if tracking is None:
                logger.warning(f"Notification {notification.id} has no readable registration tags")
                continue
            records.append(tracking)
        return records

    def registration_report(self) -> Dict[str, Any]:
        """Source breakdown and consent rates over all registrations"""
        records = self.list_registrations()
        total = len(records)
        by_source = Counter(record.source for record in records)

        def rate(attr: str) -> float:
            if not total:
                return 0.0
            return round(sum(1 for r in records if getattr(r.consent, attr)) / total * 100, 1)

        return {
            "total": total,
            "by_source": {source.value: by_source.get(source.value, 0) for source in CustomerSource},
            "sms_operational_rate": rate("sms_operational"),
            "email_operational_rate": rate("email_operational"),
            "marketing_rate": rate("marketing"),
        }
