"""Input validation for the booking flow.

Dates arrive from users as dd/mm/yyyy and are stored as ISO yyyy-mm-dd.
Patient details arrive either comma separated ("Jane Doe, 9876543210") or as
labelled lines ("Name: Jane Doe" / "Phone: 9876543210"). Phones are kept as
digits with an optional leading "+".
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Tuple

from clinic_booking import config

USER_DATE_PATTERN = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')


class DateError(str, Enum):
    """Why a date cannot be booked."""
    INVALID_FORMAT = "invalid_format"
    WEEKEND = "weekend"
    PAST = "past"
    BEYOND_HORIZON = "beyond_horizon"


class PatientDetailsError(ValueError):
    """Raised when patient details are missing or malformed."""
    pass


@dataclass(frozen=True)
class PatientDetails:
    name: str
    phone: str


def parse_user_date(date_input: str) -> Optional[date]:
    """
    Parse dd/mm/yyyy into a calendar date.

    Returns:
        date, or None for bad syntax or impossible dates (31/02/2025)
    """
    match = USER_DATE_PATTERN.match(date_input.strip())
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_iso_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, config.ISO_DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


def format_user_date(value) -> str:
    """ISO string or date -> dd/mm/yyyy."""
    if isinstance(value, str):
        value = datetime.strptime(value, config.ISO_DATE_FORMAT).date()
    return value.strftime(config.USER_DATE_FORMAT)


def is_weekday(value: date) -> bool:
    return value.weekday() < 5


def calculate_max_advance_date(
    today: date,
    weekdays_ahead: int = config.BOOKING_RULES["max_advance_weekdays"]
) -> date:
    """
    Latest bookable date: the Nth weekday counting from tomorrow.

    Args:
        today: Reference date
        weekdays_ahead: N

    Returns:
        The date on which the Nth weekday is reached

    Example:
        >>> calculate_max_advance_date(date(2025, 1, 3), 7)  # Friday
        datetime.date(2025, 1, 14)
    """
    current = today
    counted = 0
    while counted < weekdays_ahead:
        current += timedelta(days=1)
        if is_weekday(current):
            counted += 1
    return current


def check_booking_date(value: date, today: date) -> Optional[Tuple[DateError, str]]:
    """
    Apply the clinic's date rules: weekday, not past, within the horizon.

    Returns:
        None if bookable, else (DateError, user-facing message)
    """
    if not is_weekday(value):
        return (
            DateError.WEEKEND,
            "Appointments are only available on weekdays (Monday to Friday). "
            "Please choose a different date."
        )

    if value < today:
        return (
            DateError.PAST,
            "Cannot book appointments in the past. Please choose a future date."
        )

    weekdays_ahead = config.BOOKING_RULES["max_advance_weekdays"]
    latest = calculate_max_advance_date(today, weekdays_ahead)
    if value > latest:
        return (
            DateError.BEYOND_HORIZON,
            f"Cannot book appointments more than {weekdays_ahead} weekdays in advance. "
            f"The latest available date is {format_user_date(latest)}. "
            "Please choose an earlier date."
        )

    return None


def count_digits(phone: str) -> int:
    return len(re.sub(r'\D', '', phone))


def normalize_phone_number(phone: str) -> str:
    """Digits only, keeping the last 10 (drops a country code such as 91)."""
    digits = re.sub(r'\D', '', phone)
    if len(digits) > 10:
        digits = digits[-10:]
    return digits


def _labelled_value(line: str) -> str:
    return line.split(":", 1)[1].strip() if ":" in line else ""


def _strip_label(part: str) -> str:
    """'Phone: 98765' -> '98765'; unlabelled text is returned trimmed."""
    return _labelled_value(part) if ":" in part else part.strip()


def clean_phone_number(phone: str) -> str:
    """Digits plus an optional leading '+', e.g. '+91 98765-43210' -> '+919876543210'."""
    digits = re.sub(r'\D', '', phone)
    return f"+{digits}" if phone.strip().startswith("+") else digits


def parse_patient_details(message_text: str) -> PatientDetails:
    """
    Extract patient name and phone from a details message.

    Args:
        message_text: Raw message (original case preserved)

    Returns:
        PatientDetails

    Raises:
        PatientDetailsError: With a user-facing explanation
    """
    lines = [line.strip() for line in message_text.splitlines() if line.strip()]

    name_line = phone_line = None
    if len(lines) > 1:
        name_line = next((line for line in lines if "name:" in line.lower()), None)
        phone_line = next(
            (line for line in lines if "phone:" in line.lower() or "number:" in line.lower()),
            None
        )

    if name_line and phone_line:
        name, phone = _labelled_value(name_line), _labelled_value(phone_line)
    elif "," in message_text:
        # "Jane Doe, 98765...", "Name: Jane Doe, Phone: 98765..." or split over lines
        parts = " ".join(lines).split(",")
        name, phone = _strip_label(parts[0]), _strip_label(parts[1])
    elif len(lines) > 1:
        raise PatientDetailsError("Could not find both the name and phone lines.")
    else:
        raise PatientDetailsError("Please send the name and phone number together.")

    if len(name) < config.BOOKING_RULES["min_name_length"]:
        raise PatientDetailsError(
            "Please provide a valid patient name (at least 2 characters)."
        )

    if len(name) > 255:
        raise PatientDetailsError("Please shorten the patient name (at most 255 characters).")

    phone = clean_phone_number(phone)
    min_digits = config.BOOKING_RULES["min_phone_digits"]
    if count_digits(phone) < min_digits or len(phone) > 20:
        raise PatientDetailsError(
            f"Please provide a valid phone number (at least {min_digits} digits)."
        )

    return PatientDetails(name=name, phone=phone)
