"""Shared test fixtures."""
from datetime import date, datetime
from typing import List, Optional

import pytest
from sqlalchemy.orm import sessionmaker

from clinic_booking.appointment_store import AppointmentCreate, AppointmentStore
from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.booking_flow import BookingFlowController
from clinic_booking.database import create_db_engine, init_database
from clinic_booking.reservations import ReservationTable
from clinic_booking.session_store import ConversationStateStore
from clinic_booking.state import Department
from clinic_booking.transport import TextContent

# Monday. Latest bookable date (7 weekdays from tomorrow) is Wednesday 2026-10-28.
TODAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 19, 9, 0)


class FakeClock:
    """Epoch-seconds clock advanced by hand."""

    def __init__(self, start: float = 1_800_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingTransport:
    """Collects outbound messages instead of calling WhatsApp."""

    def __init__(self):
        self.sent = []
        self.deliver = True

    async def send(self, recipient_id: str, content) -> bool:
        self.sent.append((recipient_id, content))
        return self.deliver

    def texts(self, recipient_id: Optional[str] = None) -> List[str]:
        return [
            content.body for recipient, content in self.sent
            if isinstance(content, TextContent)
            and (recipient_id is None or recipient == recipient_id)
        ]

    def last_text(self, recipient_id: str) -> str:
        texts = self.texts(recipient_id)
        assert texts, f"nothing sent to {recipient_id}"
        return texts[-1]


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_db_engine("sqlite://")
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def appointment_store(engine):
    return AppointmentStore(sessionmaker(bind=engine, expire_on_commit=False))


@pytest.fixture
def reservations(clock):
    return ReservationTable(clock=clock)


@pytest.fixture
def sessions(clock):
    return ConversationStateStore(clock=clock)


@pytest.fixture
def calculator(appointment_store, reservations):
    return AvailabilityCalculator(appointment_store, reservations, today=lambda: TODAY)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def controller(sessions, reservations, calculator, appointment_store, transport, clock):
    return BookingFlowController(
        sessions=sessions,
        reservations=reservations,
        availability=calculator,
        store=appointment_store,
        transport=transport,
        today=lambda: TODAY,
        now=lambda: NOW,
        clock=clock,
    )


@pytest.fixture
def book_appointment(appointment_store):
    """Insert an appointment directly into the store."""
    def _book(day: date, slot: str, department: Department = Department.ORTHO,
              name: str = "Existing Patient", phone: str = "9000000000"):
        return appointment_store.create(AppointmentCreate(
            date=day,
            time_slot=slot,
            patient_name=name,
            department=department,
            patient_phone=phone,
        ))
    return _book
