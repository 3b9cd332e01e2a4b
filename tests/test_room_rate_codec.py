"""
Room rate override codec
"""
from frontdesk.hotel.codecs.room_rate import apply_room_rate_patch, get_effective_rate, parse_room_rate_tags


class TestParseRoomRate:
    """Reading RATE: tags"""

    def test_no_override(self):
        """Absent tag inherits"""
        parsed = parse_room_rate_tags(["note", "HK:STATUS=CLEAN"])
        assert parsed.rate.override_nightly_rate is None
        assert parsed.notes == ["note", "HK:STATUS=CLEAN"]

    def test_override_read(self):
        """Numeric value is read and rounded"""
        assert parse_room_rate_tags(["RATE:OVERRIDE=120.456"]).rate.override_nightly_rate == 120.46

    def test_invalid_override_ignored(self):
        """Negative and non-numeric values count as absent"""
        assert parse_room_rate_tags(["RATE:OVERRIDE=-5"]).rate.override_nightly_rate is None
        assert parse_room_rate_tags(["RATE:OVERRIDE=cheap"]).rate.override_nightly_rate is None

    def test_other_rate_tags_preserved(self):
        """Unknown RATE: tags are kept apart from notes"""
        parsed = parse_room_rate_tags(["RATE:CURRENCY=EUR", "note"])
        assert parsed.unknown_tags == ["RATE:CURRENCY=EUR"]
        assert parsed.notes == ["note"]


class TestApplyRoomRatePatch:
    """Setting and clearing the override"""

    def test_set_then_clear(self):
        """Rounded on write, removed by None"""
        out = apply_room_rate_patch(["note A", "HK:STATUS=DIRTY"], {"override_nightly_rate": 199.999})
        assert out == ["note A", "HK:STATUS=DIRTY", "RATE:OVERRIDE=200"]
        assert apply_room_rate_patch(out, {"override_nightly_rate": None}) == ["note A", "HK:STATUS=DIRTY"]

    def test_absent_keeps_value(self):
        """Empty patch leaves the override alone"""
        assert apply_room_rate_patch(["RATE:OVERRIDE=80"], {}) == ["RATE:OVERRIDE=80"]

    def test_negative_clamped(self):
        """Negative input is clamped to zero"""
        assert apply_room_rate_patch([], {"override_nightly_rate": -10}) == ["RATE:OVERRIDE=0"]

    def test_fractional_value_format(self):
        """Cents are kept"""
        assert apply_room_rate_patch([], {"override_nightly_rate": "89.5"}) == ["RATE:OVERRIDE=89.5"]

    def test_duplicate_overrides_collapse(self):
        """One override tag after a patch"""
        out = apply_room_rate_patch(["RATE:OVERRIDE=1", "RATE:OVERRIDE=2"], {})
        assert out == ["RATE:OVERRIDE=2"]


class TestEffectiveRate:
    """Override vs hotel base"""

    def test_override_wins(self):
        """An override replaces the base rate"""
        assert get_effective_rate(100.0, 80.0) == 80.0

    def test_inherit(self):
        """No override inherits the base rate"""
        assert get_effective_rate(100.0, None) == 100.0
