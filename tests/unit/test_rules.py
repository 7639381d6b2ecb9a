"""Test individual validation rules."""
import pytest
from datetime import date

from psy_scheduler import rules
from psy_scheduler.policy import BlackoutWindow, SchedulingPolicy

# Monday
TODAY = date(2025, 3, 3)


class TestName:

    def test_capitalizes_each_word(self, policy):
        assert rules.normalize_name("  maría   JOSÉ pérez ", policy) == "María José Pérez"

    def test_allows_apostrophes_and_hyphens(self, policy):
        assert rules.normalize_name("o'neil smith-jones", policy) == "O'neil Smith-jones"

    def test_requires_two_words(self, policy):
        with pytest.raises(ValueError, match="first and last name"):
            rules.normalize_name("Roberto", policy)

    def test_too_short(self, policy):
        with pytest.raises(ValueError, match="at least 3"):
            rules.normalize_name("Al", policy)

    def test_too_long(self, policy):
        with pytest.raises(ValueError, match="exceed 100"):
            rules.normalize_name("Ana " + "b" * 100, policy)

    @pytest.mark.parametrize("name", ["John3 Doe", "Jane_Doe Smith", "Ana <b>Perez</b>"])
    def test_rejects_non_letters(self, policy, name):
        with pytest.raises(ValueError, match="only contain letters"):
            rules.normalize_name(name, policy)


class TestEmail:

    def test_lowercases_and_trims(self, policy):
        assert rules.normalize_email(" Maria.Perez@Email.COM ", policy) == "maria.perez@email.com"

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "a@@b.com", "@email.com"])
    def test_rejects_malformed(self, policy, email):
        with pytest.raises(ValueError, match="Invalid email"):
            rules.normalize_email(email, policy)

    @pytest.mark.parametrize("email", ["x@tempmail.com", "x@mail.guerrillamail.org", "x@10minutemail.net"])
    def test_rejects_disposable_domains(self, policy, email):
        with pytest.raises(ValueError, match="Temporary"):
            rules.normalize_email(email, policy)

    def test_deny_list_is_configurable(self):
        policy = SchedulingPolicy(disposable_email_domains=["spam"])
        assert rules.normalize_email("x@tempmail.com", policy) == "x@tempmail.com"
        with pytest.raises(ValueError):
            rules.normalize_email("x@spambox.com", policy)


class TestPhone:

    @pytest.mark.parametrize("phone", ["987654321", "987 654 321", "51987654321", "+51 987 654 321", "+51987654321"])
    def test_normalizes_to_country_code(self, policy, phone):
        assert rules.normalize_phone(phone, policy) == "+51987654321"

    def test_optional(self, policy):
        assert rules.normalize_phone(None, policy) is None
        assert rules.normalize_phone("   ", policy) is None

    @pytest.mark.parametrize("phone", ["12345", "887654321", "+1 555 123 4567", "98765432a"])
    def test_rejects_invalid(self, policy, phone):
        with pytest.raises(ValueError, match="Invalid phone"):
            rules.normalize_phone(phone, policy)

    def test_custom_national_format(self):
        policy = SchedulingPolicy(phone_pattern=r"^(\+?34)?[67]\d{8}$", phone_country_code="34")
        assert rules.normalize_phone("612 345 678", policy) == "+34612345678"


class TestDate:

    def test_accepts_weekday(self, policy):
        assert rules.check_date("2025-03-10", policy, TODAY) == "2025-03-10"
        assert rules.check_date(date(2025, 3, 10), policy, TODAY) == "2025-03-10"

    def test_today_is_allowed(self, policy):
        assert rules.check_date("2025-03-03", policy, TODAY) == "2025-03-03"

    def test_rejects_past(self, policy):
        with pytest.raises(ValueError, match="past"):
            rules.check_date("2025-02-28", policy, TODAY)

    @pytest.mark.parametrize("day", ["2025-03-08", "2025-03-09"])
    def test_rejects_weekend(self, policy, day):
        with pytest.raises(ValueError, match="weekends"):
            rules.check_date(day, policy, TODAY)

    def test_horizon_is_six_months(self, policy):
        assert rules.check_date("2025-09-03", policy, TODAY) == "2025-09-03"
        with pytest.raises(ValueError, match="6 months"):
            rules.check_date("2025-09-04", policy, TODAY)

    @pytest.mark.parametrize("day", ["2025-05-01", "2025-07-28", "2025-07-29"])
    def test_rejects_holidays(self, policy, day):
        with pytest.raises(ValueError, match="holidays"):
            rules.check_date(day, policy, date(2025, 4, 1))

    def test_holidays_ignore_year(self):
        policy = SchedulingPolicy(holidays=["03-10"])
        with pytest.raises(ValueError, match="holidays"):
            rules.check_date("2025-03-10", policy, TODAY)

    def test_rejects_malformed(self, policy):
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            rules.check_date("10/03/2025", policy, TODAY)


def test_add_months_clamps_month_end():
    assert rules.add_months(date(2025, 3, 3), 6) == date(2025, 9, 3)
    assert rules.add_months(date(2025, 8, 31), 6) == date(2026, 2, 28)
    assert rules.add_months(date(2023, 8, 31), 6) == date(2024, 2, 29)


class TestStartTime:

    @pytest.mark.parametrize("value,expected", [("09:00", "09:00"), ("9:00", "09:00"), ("19:45", "19:45")])
    def test_accepts(self, policy, value, expected):
        assert rules.check_start_time(value, policy) == expected

    @pytest.mark.parametrize("value", ["08:45", "20:00", "21:15"])
    def test_outside_business_hours(self, policy, value):
        with pytest.raises(ValueError, match="between 09:00 and 20:00"):
            rules.check_start_time(value, policy)

    def test_granularity(self, policy):
        with pytest.raises(ValueError, match="15-minute"):
            rules.check_start_time("10:10", policy)

    def test_format(self, policy):
        with pytest.raises(ValueError, match="HH:MM"):
            rules.check_start_time("10h30", policy)


class TestDuration:

    @pytest.mark.parametrize("value", [30, 45, 60, 120])
    def test_accepts(self, policy, value):
        assert rules.check_duration(value, policy) == value

    def test_bounds(self, policy):
        with pytest.raises(ValueError, match="Minimum"):
            rules.check_duration(15, policy)
        with pytest.raises(ValueError, match="Maximum"):
            rules.check_duration(135, policy)

    def test_multiple_of_granularity(self, policy):
        with pytest.raises(ValueError, match="15-minute"):
            rules.check_duration(50, policy)

    @pytest.mark.parametrize("value", [True, "60", 60.0])
    def test_rejects_non_integers(self, policy, value):
        with pytest.raises(ValueError, match="whole number"):
            rules.check_duration(value, policy)


def test_room_required():
    assert rules.normalize_room(" A-101 ") == "A-101"
    with pytest.raises(ValueError, match="room"):
        rules.normalize_room("   ")
    with pytest.raises(ValueError, match="room"):
        rules.normalize_room(None)


class TestNotes:

    def test_trims_and_blanks(self, policy):
        assert rules.normalize_notes("  prefers mornings ", policy) == "prefers mornings"
        assert rules.normalize_notes("   ", policy) is None
        assert rules.normalize_notes(None, policy) is None

    def test_length(self, policy):
        with pytest.raises(ValueError, match="500"):
            rules.normalize_notes("x" * 501, policy)

    @pytest.mark.parametrize("notes", [
        "Card 1234567812345678",
        "Card 4111 1111 1111 1111",
        "Card 4111-1111-1111-1111",
        "DNI 12345678",
        "SSN 123-45-6789",
    ])
    def test_sensitive_data(self, policy, notes):
        with pytest.raises(ValueError, match="sensitive"):
            rules.normalize_notes(notes, policy)


class TestCrossField:

    def test_must_end_by_close(self, policy):
        rules.check_within_business_hours("19:00", 60, policy)
        with pytest.raises(ValueError, match="end by 20:00"):
            rules.check_within_business_hours("19:30", 60, policy)

    @pytest.mark.parametrize("start,duration", [("12:30", 60), ("13:30", 30), ("13:00", 30), ("12:00", 120)])
    def test_blackout_overlap(self, policy, start, duration):
        with pytest.raises(ValueError, match="lunch"):
            rules.check_blackouts(start, duration, policy)

    @pytest.mark.parametrize("start,duration", [("12:00", 60), ("14:00", 30), ("11:00", 120)])
    def test_touching_blackout_is_fine(self, policy, start, duration):
        rules.check_blackouts(start, duration, policy)

    def test_configured_blackouts(self):
        policy = SchedulingPolicy(blackout_windows=[
            BlackoutWindow(label="staff meeting", start="17:00", end="18:00"),
        ])
        rules.check_blackouts("13:00", 60, policy)
        with pytest.raises(ValueError, match="staff meeting"):
            rules.check_blackouts("16:30", 60, policy)


def test_property_valid_start_and_duration_end_by_close(policy):
    """Every start/duration that passes its own rules plus the end-of-day rule ends by close."""
    for start in range(0, 24 * 60, 15):
        for duration in range(0, 180, 15):
            try:
                start_time = rules.check_start_time(f"{start // 60:02d}:{start % 60:02d}", policy)
                rules.check_duration(duration, policy)
                rules.check_within_business_hours(start_time, duration, policy)
            except ValueError:
                continue
            assert start + duration <= policy.business_end_minutes


class TestCancelReason:

    def test_optional(self, policy):
        assert rules.normalize_cancel_reason(None, policy) is None
        assert rules.normalize_cancel_reason("  ", policy) is None

    def test_bounds(self, policy):
        assert rules.normalize_cancel_reason("Client moved abroad", policy) == "Client moved abroad"
        with pytest.raises(ValueError, match="at least 10"):
            rules.normalize_cancel_reason("sick", policy)
        with pytest.raises(ValueError, match="exceed 200"):
            rules.normalize_cancel_reason("x" * 201, policy)
