"""Tests for date rules and patient detail parsing."""
from datetime import date, timedelta

import pytest

from clinic_booking.validation import (
    DateError,
    PatientDetailsError,
    calculate_max_advance_date,
    check_booking_date,
    format_user_date,
    normalize_phone_number,
    parse_iso_date,
    parse_patient_details,
    parse_user_date,
)


class TestDates:

    def test_parse_user_date(self):
        assert parse_user_date("21/10/2026") == date(2026, 10, 21)
        assert parse_user_date("1/2/2027") == date(2027, 2, 1)

    @pytest.mark.parametrize("raw", ["2026-10-21", "31/02/2026", "21/10/26", "tomorrow", ""])
    def test_parse_user_date_rejects(self, raw):
        assert parse_user_date(raw) is None

    def test_parse_iso_date(self):
        assert parse_iso_date("2026-10-21") == date(2026, 10, 21)
        assert parse_iso_date("21/10/2026") is None
        assert parse_iso_date(None) is None

    def test_format_user_date_accepts_iso_string_and_date(self):
        assert format_user_date("2026-10-21") == "21/10/2026"
        assert format_user_date(date(2026, 1, 5)) == "05/01/2026"

    def test_max_advance_date_counts_weekdays_from_tomorrow(self, today):
        # Monday + 7 weekdays: Tue..Fri (4), Mon..Wed (3)
        assert calculate_max_advance_date(today, 7) == date(2026, 10, 28)

    def test_max_advance_date_from_friday_skips_weekend(self):
        assert calculate_max_advance_date(date(2025, 1, 3), 7) == date(2025, 1, 14)

    def test_max_advance_date_from_saturday(self):
        # Counting starts Sunday; first weekday is Monday
        assert calculate_max_advance_date(date(2026, 10, 24), 1) == date(2026, 10, 26)


class TestCheckBookingDate:

    def test_weekday_within_horizon_is_bookable(self, today):
        assert check_booking_date(date(2026, 10, 21), today) is None

    def test_today_is_bookable(self, today):
        assert check_booking_date(today, today) is None

    def test_latest_date_is_bookable(self, today):
        assert check_booking_date(date(2026, 10, 28), today) is None

    @pytest.mark.parametrize("day", [date(2026, 10, 24), date(2026, 10, 25), date(2026, 10, 17)])
    def test_weekends_rejected(self, today, day):
        kind, message = check_booking_date(day, today)
        assert kind == DateError.WEEKEND
        assert "weekdays" in message

    def test_past_rejected(self, today):
        kind, _ = check_booking_date(today - timedelta(days=3), today)  # Friday
        assert kind == DateError.PAST

    def test_beyond_horizon_names_latest_date(self, today):
        kind, message = check_booking_date(date(2026, 10, 29), today)
        assert kind == DateError.BEYOND_HORIZON
        assert "7 weekdays" in message
        assert "28/10/2026" in message


class TestPatientDetails:

    def test_comma_separated(self):
        details = parse_patient_details("Jane Doe, 9876543210")
        assert details.name == "Jane Doe"
        assert details.phone == "9876543210"

    def test_labelled_lines(self):
        details = parse_patient_details("Patient Name: John Smith\nPhone: +91 98765 43210")
        assert details.name == "John Smith"
        assert details.phone == "+919876543210"

    def test_labelled_number_line(self):
        details = parse_patient_details("name: Asha\nnumber: 9876543210")
        assert details.phone == "9876543210"

    @pytest.mark.parametrize("raw", [
        "Name: Jane Doe, Phone: 9876543210",
        "Patient Name: Jane Doe, Phone Number: 9876543210",
        "Jane Doe, Phone: 98765-43210",
        "Name: Jane Doe, 9876543210",
    ])
    def test_labels_stripped_on_one_line(self, raw):
        details = parse_patient_details(raw)
        assert details.name == "Jane Doe"
        assert details.phone == "9876543210"

    @pytest.mark.parametrize("raw", [
        "Jane Doe,\n9876543210",
        "Jane Doe\n, 9876543210",
    ])
    def test_comma_split_across_lines(self, raw):
        details = parse_patient_details(raw)
        assert details.name == "Jane Doe"
        assert details.phone == "9876543210"

    def test_phone_punctuation_removed(self):
        assert parse_patient_details("Jane Doe, (98765) 43-210").phone == "9876543210"

    def test_original_case_preserved(self):
        assert parse_patient_details("McDonald, 9876543210").name == "McDonald"

    @pytest.mark.parametrize("raw", [
        "Jane Doe 9876543210",
        "J, 9876543210",
        "Jane Doe, 98765",
        "Name: Jane Doe\nAge: 40",
        "Jane Doe\n9876543210",
        "Jane Doe, 98765432109876543210123",
    ])
    def test_rejected(self, raw):
        with pytest.raises(PatientDetailsError):
            parse_patient_details(raw)

    def test_normalize_phone_number_keeps_last_ten_digits(self):
        assert normalize_phone_number("+91 98765-43210") == "9876543210"
        assert normalize_phone_number("919876543210") == "9876543210"
        assert normalize_phone_number("12345") == "12345"
