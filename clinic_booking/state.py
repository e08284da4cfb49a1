"""Booking session schema and state machine.

- Enums for discrete steps and departments
- One mutable BookingSession per WhatsApp user, held in memory only
- Explicit transition map guarding forward progress
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from clinic_booking.reservations import SlotKey


class BookingStep(str, Enum):
    """Position of a user in the booking conversation."""
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_DEPARTMENT = "awaiting_department"
    AWAITING_DATE = "awaiting_date"
    AWAITING_SLOT = "awaiting_slot"
    AWAITING_DETAILS = "awaiting_details"


class Department(str, Enum):
    """Clinical departments accepting appointments."""
    ORTHO = "Ortho"
    ENT = "ENT"


class InvalidTransitionError(Exception):
    """Raised when the controller attempts a transition the state machine forbids."""
    pass


@dataclass
class BookingSession:
    """
    In-progress booking conversation for one user.

    date is ISO yyyy-mm-dd once resolved, slot is 24h HH:MM.
    reserved_at and last_activity_at are epoch seconds.
    """
    step: BookingStep = BookingStep.IDLE
    department: Optional[Department] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    reserved_at: Optional[float] = None
    last_activity_at: float = field(default_factory=time.time)

    def reservation_key(self) -> Optional[SlotKey]:
        """Key of the slot this session holds, if it got that far."""
        if self.date and self.department and self.slot:
            return SlotKey(self.date, self.department.value, self.slot)
        return None


# Pattern: Current step -> [allowed next steps]
# Re-prompting keeps the step; cancellation and completion delete the session.
VALID_TRANSITIONS: Dict[BookingStep, list[BookingStep]] = {
    BookingStep.IDLE: [BookingStep.AWAITING_CONFIRMATION],
    BookingStep.AWAITING_CONFIRMATION: [BookingStep.AWAITING_DEPARTMENT],
    BookingStep.AWAITING_DEPARTMENT: [BookingStep.AWAITING_DATE],
    BookingStep.AWAITING_DATE: [BookingStep.AWAITING_SLOT],
    BookingStep.AWAITING_SLOT: [
        BookingStep.AWAITING_DETAILS,
        BookingStep.AWAITING_DATE,  # chosen date stopped being bookable (e.g. overnight)
    ],
    BookingStep.AWAITING_DETAILS: [],
}


def validate_transition(current: BookingStep, intended: BookingStep) -> bool:
    """
    Validate step transition.

    Args:
        current: Current booking step
        intended: Intended next step

    Returns:
        True if transition is valid

    Example:
        >>> validate_transition(BookingStep.IDLE, BookingStep.AWAITING_CONFIRMATION)
        True
    """
    if current == intended:
        return True
    return intended in VALID_TRANSITIONS.get(current, [])
