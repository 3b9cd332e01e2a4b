"""
frontdesk/hotel/codecs/customer_tracking.py

Customer registration audit trail, encoded into Notification.message.

Layout: an optional human summary line, then one ``CUST:KEY=VALUE`` line
per field. Free-form values are percent-encoded. Reports read the lines
back to measure source breakdown and consent rates.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from tagcore.coerce import decode_value, encode_value

PREFIX = "CUST:"
TRACKING_VERSION = 1
REGISTERED_EVENT = "CUSTOMER_REGISTERED"

_TRUE_WORDS = {"true", "1", "yes", "y"}


class CustomerSource(str, Enum):
    WALK_IN = "WALK_IN"
    PHONE = "PHONE"
    WEBSITE = "WEBSITE"
    OTA = "OTA"
    AGENT = "AGENT"
    EMPLOYEE = "EMPLOYEE"


CUSTOMER_SOURCE_LABEL = {
    CustomerSource.WALK_IN: "Walk-in",
    CustomerSource.PHONE: "Phone",
    CustomerSource.WEBSITE: "Website",
    CustomerSource.OTA: "OTA",
    CustomerSource.AGENT: "Agent",
    CustomerSource.EMPLOYEE: "Employee",
}


class ConsentMethod(str, Enum):
    VERBAL = "VERBAL"
    WRITTEN = "WRITTEN"
    DIGITAL = "DIGITAL"


@dataclass
class CustomerConsent:
    sms_operational: bool = False
    email_operational: bool = False
    marketing: bool = False
    method: str = ConsentMethod.VERBAL.value
    captured_at: str = ""  # ISO-8601


@dataclass
class CustomerUtm:
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None


@dataclass
class CustomerRegistrationContext:
    page: Optional[str] = None
    referrer: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    user_agent: Optional[str] = None
    utm: Optional[CustomerUtm] = None


@dataclass
class CustomerRegistrationTracking:
    source: str
    actor_email: str
    actor_role: str
    customer_email: str
    consent: CustomerConsent
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    context: CustomerRegistrationContext = field(default_factory=CustomerRegistrationContext)
    version: int = TRACKING_VERSION
    event: str = REGISTERED_EVENT


@dataclass
class ParsedTrackingMessage:
    summary: Optional[str]
    tags: Dict[str, str]


# attribute -> tag key, written in this order when set
_CONTEXT_KEYS = (
    ("page", "CTX_PAGE"),
    ("referrer", "CTX_REFERRER"),
    ("locale", "CTX_LOCALE"),
    ("timezone", "CTX_TZ"),
    ("user_agent", "CTX_UA"),
)
_UTM_KEYS = (
    ("utm_source", "UTM_SOURCE"),
    ("utm_medium", "UTM_MEDIUM"),
    ("utm_campaign", "UTM_CAMPAIGN"),
    ("utm_term", "UTM_TERM"),
    ("utm_content", "UTM_CONTENT"),
)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUE_WORDS


def normalize_phone(value: str) -> str:
    """Keep digits and a single leading '+'."""
    out = re.sub(r"[^\d+]", "", value.strip())
    if "+" in out:
        out = "+" + out[1:].replace("+", "") if out.startswith("+") else out.replace("+", "")
    return out


def is_probably_valid_phone(normalized: str) -> bool:
    """7 to 15 digits (E.164 maximum)."""
    digits = re.sub(r"\D", "", normalized)
    return 7 <= len(digits) <= 15


def encode_customer_registration_tracking(
    tracking: CustomerRegistrationTracking, summary: Optional[str] = None
) -> str:
    """
    Encode a registration into a notification message.

    Args:
        tracking: registration record
        summary: optional human line shown above the tags

    Returns:
        Newline separated message
    """
    lines: List[str] = []
    if summary and summary.strip():
        lines.append(summary.strip())

    def put(key: str, value: str) -> None:
        lines.append(f"{PREFIX}{key}={value}")

    put("V", str(TRACKING_VERSION))
    put("EVENT", tracking.event)
    put("SOURCE", tracking.source.value if isinstance(tracking.source, Enum) else tracking.source)

    put("ACTOR_EMAIL", encode_value(tracking.actor_email))
    put("ACTOR_ROLE", encode_value(tracking.actor_role))

    put("CUSTOMER_EMAIL", encode_value(tracking.customer_email))
    if tracking.customer_name:
        put("CUSTOMER_NAME", encode_value(tracking.customer_name))
    if tracking.phone:
        put("PHONE", encode_value(tracking.phone))

    consent = tracking.consent
    method = consent.method.value if isinstance(consent.method, Enum) else consent.method
    put("CONSENT_SMS_OP", _flag(consent.sms_operational))
    put("CONSENT_EMAIL_OP", _flag(consent.email_operational))
    put("CONSENT_MARKETING", _flag(consent.marketing))
    put("CONSENT_METHOD", method)
    put("CONSENT_AT", consent.captured_at)

    context = tracking.context or CustomerRegistrationContext()
    for attr, key in _CONTEXT_KEYS:
        value = getattr(context, attr)
        if value:
            put(key, encode_value(value))

    if context.utm is not None:
        for attr, key in _UTM_KEYS:
            value = getattr(context.utm, attr)
            if value:
                put(key, encode_value(value))

    return "\n".join(lines)


def parse_customer_tracking_message(message: Optional[str]) -> ParsedTrackingMessage:
    """The first non-tag line is the summary; tag lines become KEY -> value."""
    tags: Dict[str, str] = {}
    summary: Optional[str] = None

    for line in (message or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        if not line.startswith(PREFIX):
            if summary is None:
                summary = line
            continue
        eq = line.find("=")
        if eq < 0:
            continue
        tags[line[len(PREFIX):eq]] = decode_value(line[eq + 1:])

    return ParsedTrackingMessage(summary=summary, tags=tags)


def tags_to_consent(tags: Dict[str, str]) -> Optional[CustomerConsent]:
    """Consent record, or None when no capture time was recorded."""
    captured_at = tags.get("CONSENT_AT")
    if not captured_at:
        return None
    return CustomerConsent(
        sms_operational=_is_true(tags.get("CONSENT_SMS_OP")),
        email_operational=_is_true(tags.get("CONSENT_EMAIL_OP")),
        marketing=_is_true(tags.get("CONSENT_MARKETING")),
        method=tags.get("CONSENT_METHOD") or ConsentMethod.VERBAL.value,
        captured_at=captured_at,
    )


def tags_to_tracking(tags: Dict[str, str]) -> Optional[CustomerRegistrationTracking]:
    consent = tags_to_consent(tags)
    customer_email = tags.get("CUSTOMER_EMAIL")
    if consent is None or not customer_email:
        return None

    utm = CustomerUtm(**{attr: tags.get(key) or None for attr, key in _UTM_KEYS})
    has_utm = any(getattr(utm, attr) for attr, _ in _UTM_KEYS)
    context = CustomerRegistrationContext(
        **{attr: tags.get(key) or None for attr, key in _CONTEXT_KEYS},
        utm=utm if has_utm else None,
    )
    version = tags.get("V", "")
    return CustomerRegistrationTracking(
        version=int(version) if version.isascii() and version.isdigit() else TRACKING_VERSION,
        event=tags.get("EVENT") or REGISTERED_EVENT,
        source=tags.get("SOURCE", ""),
        actor_email=tags.get("ACTOR_EMAIL", ""),
        actor_role=tags.get("ACTOR_ROLE", ""),
        customer_email=customer_email,
        customer_name=tags.get("CUSTOMER_NAME") or None,
        phone=tags.get("PHONE") or None,
        consent=consent,
        context=context,
    )
