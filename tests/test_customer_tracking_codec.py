"""
Customer registration tracking codec
"""
from frontdesk.hotel.codecs.customer_tracking import (
    CustomerConsent, CustomerRegistrationContext, CustomerRegistrationTracking, CustomerSource,
    CustomerUtm, encode_customer_registration_tracking, is_probably_valid_phone, normalize_phone,
    TRACKING_VERSION, parse_customer_tracking_message, tags_to_consent, tags_to_tracking,
)


def _make_tracking(**overrides):
    values = dict(
        source=CustomerSource.WALK_IN.value,
        actor_email="front@hotel.test",
        actor_role="WAITER",
        customer_email="guest@example.com",
        customer_name="Ana Lima",
        phone="+351912345678",
        consent=CustomerConsent(
            sms_operational=True,
            email_operational=False,
            marketing=True,
            method="WRITTEN",
            captured_at="2025-01-02T03:04:05.000Z",
        ),
    )
    values.update(overrides)
    return CustomerRegistrationTracking(**values)


class TestEncodeTracking:
    """Writing CUST: lines"""

    def test_layout(self):
        """Summary first, then fixed-order tag lines"""
        message = encode_customer_registration_tracking(_make_tracking(), "Customer registered (Walk-in)")
        lines = message.split("\n")
        assert lines[0] == "Customer registered (Walk-in)"
        assert lines[1:4] == ["CUST:V=1", "CUST:EVENT=CUSTOMER_REGISTERED", "CUST:SOURCE=WALK_IN"]
        assert "CUST:ACTOR_EMAIL=front%40hotel.test" in lines
        assert "CUST:CONSENT_SMS_OP=true" in lines
        assert "CUST:CONSENT_EMAIL_OP=false" in lines
        assert "CUST:CONSENT_METHOD=WRITTEN" in lines

    def test_no_summary(self):
        """Without a summary the first line is a tag"""
        message = encode_customer_registration_tracking(_make_tracking())
        assert message.startswith("CUST:V=1\n")

    def test_optional_fields_omitted(self):
        """Unset name, phone and context are not written"""
        message = encode_customer_registration_tracking(_make_tracking(customer_name=None, phone=None))
        assert "CUSTOMER_NAME" not in message
        assert "PHONE=" not in message
        assert "CTX_" not in message
        assert "UTM_" not in message

    def test_context_and_utm(self):
        """Context values are percent-encoded"""
        context = CustomerRegistrationContext(
            page="/book?room=1", locale="pt-PT",
            utm=CustomerUtm(utm_source="google", utm_campaign="summer sale"),
        )
        message = encode_customer_registration_tracking(_make_tracking(context=context))
        assert "CUST:CTX_PAGE=%2Fbook%3Froom%3D1" in message
        assert "CUST:UTM_CAMPAIGN=summer%20sale" in message


class TestParseTracking:
    """Reading CUST: lines back"""

    def test_round_trip(self):
        """Decoded record matches the encoded one"""
        context = CustomerRegistrationContext(referrer="https://example.com/a b", utm=CustomerUtm(utm_medium="cpc"))
        tracking = _make_tracking(context=context)
        parsed = parse_customer_tracking_message(encode_customer_registration_tracking(tracking, "hello"))
        assert parsed.summary == "hello"
        assert tags_to_tracking(parsed.tags) == tracking

    def test_first_free_line_is_summary(self):
        """Later free lines are ignored"""
        parsed = parse_customer_tracking_message("first\nsecond\nCUST:SOURCE=OTA")
        assert parsed.summary == "first"
        assert parsed.tags == {"SOURCE": "OTA"}

    def test_lines_without_equals_ignored(self):
        """Malformed tag lines are skipped"""
        assert parse_customer_tracking_message("CUST:BROKEN").tags == {}

    def test_empty_message(self):
        """None parses to nothing"""
        parsed = parse_customer_tracking_message(None)
        assert parsed.summary is None
        assert parsed.tags == {}

    def test_consent_requires_capture_time(self):
        """No CONSENT_AT means no consent record"""
        assert tags_to_consent({"CONSENT_SMS_OP": "true"}) is None

    def test_consent_flags_lenient(self):
        """yes / 1 read as true, method defaults to VERBAL"""
        consent = tags_to_consent({"CONSENT_AT": "x", "CONSENT_SMS_OP": "yes", "CONSENT_MARKETING": "1"})
        assert consent.sms_operational is True
        assert consent.marketing is True
        assert consent.email_operational is False
        assert consent.method == "VERBAL"

    def test_tracking_requires_customer_email(self):
        """Records without a customer are unreadable"""
        assert tags_to_tracking({"CONSENT_AT": "x"}) is None

    def test_non_ascii_digit_version_defaults(self):
        """Superscript digits are not a version number"""
        message = "CUST:V=\u00b2\nCUST:CUSTOMER_EMAIL=a@b.c\nCUST:CONSENT_AT=2025-01-01T00:00:00.000Z"
        tracking = tags_to_tracking(parse_customer_tracking_message(message).tags)
        assert tracking.version == TRACKING_VERSION
        assert tracking.customer_email == "a@b.c"


class TestPhone:
    """Phone normalization"""

    def test_normalize(self):
        """Digits and a single leading plus"""
        assert normalize_phone(" +351 (91) 234-5678 ") == "+351912345678"
        assert normalize_phone("00+351") == "00351"
        assert normalize_phone("++12") == "+12"

    def test_validity(self):
        """7 to 15 digits"""
        assert is_probably_valid_phone("+351912345678")
        assert not is_probably_valid_phone("12345")
        assert not is_probably_valid_phone("1234567890123456")
