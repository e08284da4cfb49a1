"""Tests for outbound message formatting."""
from datetime import date, datetime

from clinic_booking import config, messages
from clinic_booking.appointment_store import AppointmentRecord
from clinic_booking.availability import AvailabilityResult, DayAvailability
from clinic_booking.state import Department


def make_record(**overrides):
    fields = dict(
        id=7, date=date(2026, 10, 21), time_slot="13:30:00", patient_name="Jane Doe",
        department="Ortho", patient_phone="9876543210",
        created_at=datetime(2026, 10, 19, 9, 0), updated_at=datetime(2026, 10, 19, 9, 0),
    )
    fields.update(overrides)
    return AppointmentRecord(**fields)


def test_booking_rules_disclose_fee_and_horizon():
    text = messages.booking_rules()
    assert config.SLOT_BOOKING_FEE in text
    assert "7 weekdays" in text


def test_ask_date_shows_latest_bookable_date():
    assert "28/10/2026" in messages.ask_date(Department.ORTHO, date(2026, 10, 19))


def test_available_slots_in_12h_form():
    text = messages.available_slots("2026-10-21", ["10:30", "13:45"], Department.ENT)
    assert "21/10/2026 (ENT)" in text
    assert "10:30 AM, 1:45 PM" in text


def test_slot_reserved_by_other():
    text = messages.slot_reserved_by_other("11:15", ["10:30"])
    assert "11:15 AM was just reserved by another user" in text
    assert "10:30 AM" in text


def test_booking_confirmed_names_everything():
    text = messages.booking_confirmed(make_record())

    assert "Jane Doe" in text
    assert "Orthopedics" in text
    assert "21/10/2026" in text
    assert "1:30 PM" in text
    assert "9876543210" in text
    assert config.SLOT_BOOKING_FEE in text
    assert config.CLINIC["location"] in text


def test_failures_offer_phone_fallback():
    assert config.CLINIC["phone"] in messages.generic_error()
    assert config.CLINIC["phone"] in messages.booking_failed()


def test_user_appointments_lists_each_booking():
    text = messages.user_appointments([
        make_record(),
        make_record(id=8, department="ENT", time_slot="10:45:00", date=date(2026, 10, 22)),
    ])

    assert "21/10/2026* at *1:30 PM" in text
    assert "22/10/2026* at *10:45 AM" in text
    assert "ENT" in text


def test_weekly_overview_counts():
    day = DayAvailability(
        date=date(2026, 10, 19),
        departments={
            Department.ORTHO: AvailabilityResult(
                available=config.TIME_SLOTS[:7], booked=config.TIME_SLOTS[7:9],
                reserved=config.TIME_SLOTS[9:]
            ),
            Department.ENT: AvailabilityResult(error="Failed to get available slots", store_failed=True),
        },
    )

    text = messages.weekly_overview([day])

    assert "Monday, 19 Oct:" in text
    assert "7/10 slots available (1 temporarily reserved)" in text
    assert "Failed to get available slots" in text
