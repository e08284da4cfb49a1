"""FastAPI dependency injection functions.

Pattern: one instance per process, created on first use and shared across
requests. Tests swap them with app.dependency_overrides.
"""
from functools import lru_cache

from clinic_booking.appointment_store import AppointmentStore
from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.booking_flow import BookingFlowController
from clinic_booking.database import get_session_factory
from clinic_booking.reservations import ReservationTable
from clinic_booking.session_store import ConversationStateStore
from clinic_booking.sweeper import Sweeper
from clinic_booking.transport import WhatsAppTransport


@lru_cache(maxsize=1)
def get_session_store() -> ConversationStateStore:
    return ConversationStateStore()


@lru_cache(maxsize=1)
def get_reservation_table() -> ReservationTable:
    return ReservationTable()


@lru_cache(maxsize=1)
def get_appointment_store() -> AppointmentStore:
    return AppointmentStore(get_session_factory())


@lru_cache(maxsize=1)
def get_transport() -> WhatsAppTransport:
    return WhatsAppTransport()


@lru_cache(maxsize=1)
def get_availability_calculator() -> AvailabilityCalculator:
    return AvailabilityCalculator(get_appointment_store(), get_reservation_table())


@lru_cache(maxsize=1)
def get_controller() -> BookingFlowController:
    """
    Get the booking flow controller (cached singleton).

    Returns:
        Controller wired to the shared stores and transport
    """
    return BookingFlowController(
        sessions=get_session_store(),
        reservations=get_reservation_table(),
        availability=get_availability_calculator(),
        store=get_appointment_store(),
        transport=get_transport(),
    )


@lru_cache(maxsize=1)
def get_sweeper() -> Sweeper:
    return Sweeper(get_session_store(), get_reservation_table())
