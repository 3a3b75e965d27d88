from datetime import date

from booking import validation
from booking.types import Program, Slot


TODAY = date(2026, 10, 7)


class TestDate:
    def test_tomorrow_is_fine(self):
        assert validation.validate_date(date(2026, 10, 8), TODAY, 1) == []

    def test_today_and_past_rejected(self):
        assert validation.validate_date(TODAY, TODAY, 0)
        assert validation.validate_date(date(2026, 9, 30), TODAY, 1)

    def test_lead_time(self):
        assert validation.validate_date(date(2026, 10, 9), TODAY, 3)
        assert validation.validate_date(date(2026, 10, 10), TODAY, 3) == []


def test_slot_must_be_in_catalog():
    assert validation.validate_slot(Program.TOUR, Slot.FULL)
    assert validation.validate_slot(Program.EXPERIENCE, Slot.FULL) == []


class TestProfile:
    def test_keeps_known_fields_trimmed(self):
        clean, errors = validation.validate_profile({
            "last_name": "  Sato ", "email": "sato@example.com", "unknown": "x",
        })
        assert errors == []
        assert clean == {"last_name": "Sato", "email": "sato@example.com"}

    def test_full_width_phone_is_folded(self):
        clean, errors = validation.validate_profile({"phone": "０９０-１２３４-５６７８"})
        assert errors == []
        assert clean["phone"] == "090-1234-5678"

    def test_rejects_bad_values(self):
        _, errors = validation.validate_profile({
            "email": "nobody", "phone": "12", "kana": "Sato", "note": "x" * 2001,
        })
        assert "Invalid email" in errors
        assert "Invalid phone number" in errors
        assert "kana must be hiragana" in errors
        assert "note must be at most 2000 characters" in errors

    def test_hiragana_kana(self):
        assert validation.validate_profile({"kana": "さとう はなこ"})[1] == []

    def test_has_certificate_coercion(self):
        assert validation.validate_profile({"has_certificate": "1"})[0] == {"has_certificate": True}
        assert validation.validate_profile({"has_certificate": None})[0] == {"has_certificate": False}
        assert validation.validate_profile({"has_certificate": "maybe"})[1] == ["has_certificate must be a boolean"]

    def test_non_string_field(self):
        assert validation.validate_profile({"email": 42})[1] == ["email must be a string"]


def test_spanning_slot_refused_under_per_slot_keys():
    assert validation.validate_slot(Program.EXPERIENCE, Slot.FULL, "slot")
    assert validation.validate_slot(Program.EXPERIENCE, Slot.AM, "slot") == []
    assert validation.validate_slot(Program.EXPERIENCE, Slot.FULL, "day") == []


def test_open_override_skips_lead_time_but_not_today():
    assert validation.validate_date(date(2026, 10, 8), TODAY, 3, override=True) == []
    assert validation.validate_date(date(2026, 10, 8), TODAY, 3, override=False)
    assert validation.validate_date(TODAY, TODAY, 0, override=True)
