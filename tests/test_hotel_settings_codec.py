"""
Hotel settings codec (description-embedded block)
"""
import base64
import json

from frontdesk.hotel.codecs.hotel_settings import (
    CURRENT_BLOCK, HotelSettings, OpeningHours, apply_hotel_settings_patch, is_valid_hours,
    merge_tags, normalize_currency, normalize_settings, parse_hotel_settings,
    serialize_hotel_settings, summarize_opening_hours,
)
from frontdesk.models.schemas import HotelSettingsPatch, OpeningHoursUpdate


def _block(settings=None, tags=None, start="[[HOTEL_SETTINGS_JSON]]", end="[[/HOTEL_SETTINGS_JSON]]"):
    payload = {"version": 1, "settings": settings or {}, "tags": tags or {}}
    return f"{start}\n{json.dumps(payload)}\n{end}"


class TestParseHotelSettings:
    """Reading settings out of a description"""

    def test_empty_description_defaults(self):
        """No block: defaults and the whole text as base"""
        parsed = parse_hotel_settings("Family run hotel.")
        assert parsed.base_text == "Family run hotel."
        assert parsed.settings == HotelSettings()
        assert parsed.tags == {}
        assert parsed.raw_block is None

    def test_none_description(self):
        """None is treated as empty"""
        parsed = parse_hotel_settings(None)
        assert parsed.base_text == ""
        assert parsed.settings.currency == "USD"

    def test_current_block(self):
        """camelCase JSON settings and tags"""
        text = "Intro\n\n" + _block(
            {"baseNightlyRate": 120, "currency": "eur", "autoPostRoomCharges": True,
             "checkoutRequiresPaidFolio": False, "hotelPhone": " +1 555 "},
            {"HOURS_BREAKFAST": "07:00-10:30"},
        )
        parsed = parse_hotel_settings(text)
        assert parsed.base_text == "Intro"
        assert parsed.settings.base_nightly_rate == 120
        assert parsed.settings.currency == "EUR"
        assert parsed.settings.auto_post_room_charges is True
        assert parsed.settings.checkout_requires_paid_folio is False
        assert parsed.settings.hotel_phone == "+1 555"
        assert parsed.settings.opening_hours.breakfast == "07:00-10:30"

    def test_legacy_marker_formats(self):
        """Older marker pairs are still read"""
        for start, end in (
            ("[[HOTEL_SETTINGS]]", "[[/HOTEL_SETTINGS]]"),
            ("<<<HOTEL_SETTINGS>>>", "<<<END_HOTEL_SETTINGS>>>"),
            ("<!-- HOTEL_SETTINGS_START -->", "<!-- HOTEL_SETTINGS_END -->"),
        ):
            parsed = parse_hotel_settings(_block({"baseNightlyRate": 99}, start=start, end=end))
            assert parsed.settings.base_nightly_rate == 99

    def test_base64_payload(self):
        """base64: prefixed payloads are decoded"""
        payload = json.dumps({"settings": {"currency": "GBP"}})
        encoded = base64.b64encode(payload.encode()).decode()
        text = f"[[HOTEL_SETTINGS_JSON]]\nbase64:{encoded}\n[[/HOTEL_SETTINGS_JSON]]"
        assert parse_hotel_settings(text).settings.currency == "GBP"

    def test_broken_json_degrades(self):
        """Invalid payload falls back to defaults"""
        text = "Hi\n[[HOTEL_SETTINGS_JSON]]\n{not json\n[[/HOTEL_SETTINGS_JSON]]"
        parsed = parse_hotel_settings(text)
        assert parsed.settings == HotelSettings()
        assert parsed.base_text == "Hi"

    def test_deeply_nested_payload_degrades(self):
        """Nesting past the parser's limit falls back to defaults"""
        text = "Hi\n[[HOTEL_SETTINGS_JSON]]\n" + "[" * 100000 + "\n[[/HOTEL_SETTINGS_JSON]]"
        parsed = parse_hotel_settings(text)
        assert parsed.settings == HotelSettings()
        assert parsed.base_text == "Hi"

    def test_legacy_lines(self):
        """KEY=VALUE and KEY: VALUE lines feed settings"""
        text = "Lovely place\nBASE_RATE=85\nCURRENCY: chf\nAUTO_POST_CHARGES=yes\nVAT: CH-123"
        parsed = parse_hotel_settings(text)
        assert parsed.settings.base_nightly_rate == 85
        assert parsed.settings.currency == "CHF"
        assert parsed.settings.auto_post_room_charges is True
        assert parsed.settings.vat_number == "CH-123"
        assert parsed.tags["BASE_RATE"] == "85"

    def test_json_beats_legacy_lines(self):
        """The JSON settings object overrides tag-derived values"""
        text = "BASE_NIGHTLY_RATE=50\n\n" + _block({"baseNightlyRate": 150})
        assert parse_hotel_settings(text).settings.base_nightly_rate == 150

    def test_json_tags_beat_legacy_lines(self):
        """JSON tags overlay legacy line tags"""
        text = "HOURS_RESTAURANT=12:00-14:00\n" + _block(tags={"HOURS_RESTAURANT": "18:00-22:00"})
        assert parse_hotel_settings(text).settings.opening_hours.restaurant == "18:00-22:00"

    def test_negative_rate_clamped(self):
        """Amounts are never negative"""
        assert parse_hotel_settings(_block({"baseNightlyRate": -20})).settings.base_nightly_rate == 0

    def test_bad_currency_falls_back(self):
        """Currency must be 3-5 letters"""
        assert parse_hotel_settings(_block({"currency": "€"})).settings.currency == "USD"


class TestSerializeHotelSettings:
    """Writing the current block"""

    def test_keeps_free_text(self):
        """Description text survives and the block is appended"""
        out = serialize_hotel_settings("Family run.", {"base_nightly_rate": 100})
        assert out.startswith("Family run.\n\n[[HOTEL_SETTINGS_JSON]]\n")
        assert out.endswith("[[/HOTEL_SETTINGS_JSON]]")
        assert parse_hotel_settings(out).settings.base_nightly_rate == 100

    def test_legacy_block_rewritten(self):
        """Old markers are replaced by the current ones"""
        old = "Text\n" + _block({"currency": "EUR"}, start="[[HOTEL_SETTINGS]]", end="[[/HOTEL_SETTINGS]]")
        out = serialize_hotel_settings(old)
        assert "[[HOTEL_SETTINGS]]" not in out
        assert CURRENT_BLOCK.start in out
        assert parse_hotel_settings(out).settings.currency == "EUR"

    def test_integral_rate_written_as_int(self):
        """120.0 is stored as 120"""
        out = serialize_hotel_settings(None, {"base_nightly_rate": 120.0})
        assert '"baseNightlyRate": 120,' in out

    def test_stable_round_trip(self):
        """Serializing canonical output again is a no-op"""
        once = serialize_hotel_settings("Intro", {"currency": "EUR"}, {"HOURS_BREAKFAST": "07:00-10:00"})
        assert serialize_hotel_settings(once) == once


class TestApplyHotelSettingsPatch:
    """Patch semantics"""

    def test_only_supplied_fields_change(self):
        """Unset schema fields keep their value"""
        text = serialize_hotel_settings("Intro", {"base_nightly_rate": 100, "currency": "EUR"})
        out = apply_hotel_settings_patch(text, HotelSettingsPatch(auto_post_room_charges=True))
        settings = parse_hotel_settings(out).settings
        assert settings.base_nightly_rate == 100
        assert settings.currency == "EUR"
        assert settings.auto_post_room_charges is True

    def test_blank_currency_keeps_previous(self):
        """An empty currency does not reset it"""
        text = serialize_hotel_settings(None, {"currency": "EUR"})
        out = apply_hotel_settings_patch(text, {"currency": ""})
        assert parse_hotel_settings(out).settings.currency == "EUR"

    def test_text_field_cleared(self):
        """Explicit None clears a text setting"""
        text = serialize_hotel_settings(None, {"hotel_phone": "+1 555"})
        out = apply_hotel_settings_patch(text, {"hotel_phone": None})
        assert parse_hotel_settings(out).settings.hotel_phone == ""

    def test_opening_hours_partial(self):
        """Only the supplied meal periods change; blank deletes"""
        text = serialize_hotel_settings(None, tags={"HOURS_BREAKFAST": "07:00-10:00", "HOURS_RESTAURANT": "12:00-14:00"})
        out = apply_hotel_settings_patch(text, HotelSettingsPatch(
            opening_hours=OpeningHoursUpdate(room_service="24/7", restaurant="")
        ))
        hours = parse_hotel_settings(out).settings.opening_hours
        assert hours == OpeningHours(breakfast="07:00-10:00", restaurant="", room_service="24/7")

    def test_address_parts_joined(self):
        """Structured address is stored as one text field"""
        out = apply_hotel_settings_patch(None, {
            "address_line1": "1 Beach Rd", "city": "Porto", "zip": "4000", "country": "Portugal",
        })
        assert parse_hotel_settings(out).settings.hotel_address == "1 Beach Rd\nPorto 4000\nPortugal"

    def test_generic_tags_merge(self):
        """Tag patch overlays and deletes"""
        text = serialize_hotel_settings(None, tags={"WIFI": "guest", "PARKING": "free"})
        out = apply_hotel_settings_patch(text, {"tags": {"WIFI": "sea-view", "PARKING": None}})
        assert parse_hotel_settings(out).tags == {"WIFI": "sea-view"}

    def test_free_text_preserved(self):
        """The human description is untouched"""
        out = apply_hotel_settings_patch("Seaside.\nCall us anytime.", {"base_nightly_rate": 80})
        assert parse_hotel_settings(out).base_text == "Seaside.\nCall us anytime."

    def test_same_patch_twice_is_stable(self):
        """Re-applying a patch writes the same description"""
        patch = HotelSettingsPatch(
            currency="gbp", base_nightly_rate=90.5, address_line1="1 Quay Rd", city="Porto",
            opening_hours=OpeningHoursUpdate(breakfast="07:00-10:00"), tags={"WIFI": "sea-view"},
        )
        once = apply_hotel_settings_patch("Seaside.", patch)
        assert apply_hotel_settings_patch(once, patch) == once


class TestHelpers:
    """Validation and display helpers"""

    def test_is_valid_hours(self):
        """Ranges, lists and always-open"""
        assert is_valid_hours("07:00-10:30")
        assert is_valid_hours("07:00-10:30, 18:00 - 22:00")
        assert is_valid_hours("24/7")
        assert is_valid_hours("")
        assert not is_valid_hours("morning")
        assert not is_valid_hours("7-10")

    def test_summarize(self):
        """One display line"""
        hours = OpeningHours(breakfast="07:00-10:00", room_service="24/7")
        assert summarize_opening_hours(hours) == "Breakfast: 07:00-10:00 • Room service: 24/7"
        assert summarize_opening_hours(OpeningHours()) == "—"
        assert summarize_opening_hours(None) == "—"
        assert summarize_opening_hours({"HOURS_RESTAURANT": "12:00-14:00"}) == "Restaurant: 12:00-14:00"

    def test_merge_tags(self):
        """Blank values delete keys"""
        assert merge_tags({"A": "1", "B": "2"}, {"A": " ", "C": 3}) == {"B": "2", "C": "3"}

    def test_normalize_currency(self):
        """Letters only, uppercased"""
        assert normalize_currency(" eur ") == "EUR"
        assert normalize_currency("x", "GBP") == "GBP"

    def test_normalize_settings_snake_and_camel(self):
        """Both key styles are accepted"""
        a = normalize_settings({"base_nightly_rate": "75"}, HotelSettings())
        b = normalize_settings({"baseNightlyRate": 75}, HotelSettings())
        assert a.base_nightly_rate == b.base_nightly_rate == 75
