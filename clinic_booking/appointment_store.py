"""Durable appointment store (SQLAlchemy).

The unique constraint on (date, time_slot, department) is the only guarantee
against double booking that holds across processes. Violations surface as
SlotAlreadyBookedError so callers can tell contention apart from outages.
"""
import datetime as dt
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from clinic_booking.logging_config import get_logger
from clinic_booking.models import Appointment, SLOT_UNIQUE_CONSTRAINT
from clinic_booking.state import Department
from clinic_booking.validation import normalize_phone_number

logger = get_logger(__name__)


class AppointmentStoreError(Exception):
    """Raised when the database cannot complete a request."""
    pass


class SlotAlreadyBookedError(AppointmentStoreError):
    """Raised when (date, time_slot, department) is already taken."""
    pass


class AppointmentCreate(BaseModel):
    """Fields required to book an appointment."""
    date: dt.date
    time_slot: str = Field(..., pattern=r'^\d{2}:\d{2}$', description="24h HH:MM")
    patient_name: str = Field(..., min_length=2, max_length=255)
    department: Department
    patient_phone: str = Field(..., min_length=1, max_length=20)


class AppointmentUpdate(BaseModel):
    date: Optional[dt.date] = None
    time_slot: Optional[str] = Field(None, pattern=r'^\d{2}:\d{2}$')
    patient_name: Optional[str] = Field(None, min_length=2, max_length=255)
    department: Optional[Department] = None
    patient_phone: Optional[str] = Field(None, min_length=1, max_length=20)


class AppointmentRecord(BaseModel):
    """Stored appointment. time_slot is HH:MM:SS as the TIME column returns it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    time_slot: str
    patient_name: str
    department: str
    patient_phone: str
    created_at: datetime
    updated_at: datetime

    @field_validator("time_slot", mode="before")
    @classmethod
    def render_time(cls, value):
        if isinstance(value, time):
            return value.strftime("%H:%M:%S")
        return value


def _to_time(slot: str) -> time:
    return datetime.strptime(slot, "%H:%M").time()


def _is_slot_conflict(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return SLOT_UNIQUE_CONSTRAINT in message or "unique" in message


def _after(now: datetime):
    """Filter clause: appointment starts after now."""
    return or_(
        Appointment.date > now.date(),
        and_(Appointment.date == now.date(), Appointment.time_slot > now.time()),
    )


class AppointmentStore:
    """
    Create/read/update/delete access to the appointments table.

    Pattern: Thin wrapper around SQLAlchemy sessions, one transaction per call.
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: Bound sessionmaker
        """
        self.SessionLocal = session_factory

    def create(self, data: AppointmentCreate) -> AppointmentRecord:
        """
        Insert an appointment.

        Raises:
            SlotAlreadyBookedError: If the slot is already booked for the department
            AppointmentStoreError: On any other database failure
        """
        appointment = Appointment(
            date=data.date,
            time_slot=_to_time(data.time_slot),
            patient_name=data.patient_name,
            department=data.department.value,
            patient_phone=data.patient_phone,
        )
        try:
            with self.SessionLocal() as db:
                db.add(appointment)
                db.commit()
                db.refresh(appointment)
                record = AppointmentRecord.model_validate(appointment)
        except IntegrityError as e:
            if _is_slot_conflict(e):
                raise SlotAlreadyBookedError(
                    f"{data.department.value} slot {data.time_slot} on {data.date} is already booked"
                ) from e
            raise AppointmentStoreError(f"Could not create appointment: {e.orig}") from e
        except SQLAlchemyError as e:
            raise AppointmentStoreError(f"Could not create appointment: {e}") from e

        logger.info("appointment_created", id=record.id, date=str(record.date),
                    slot=record.time_slot, department=record.department)
        return record

    def query(
        self,
        date: Optional[date] = None,
        department: Optional[Department] = None,
        phone: Optional[str] = None,
        upcoming: bool = False,
        now: Optional[datetime] = None
    ) -> List[AppointmentRecord]:
        """
        List appointments matching every given filter (AND).

        Args:
            date: Exact date
            department: Department
            phone: Exact patient_phone
            upcoming: Only appointments after now
            now: Reference time for upcoming (default: local now)

        Raises:
            AppointmentStoreError: On database failure
        """
        try:
            with self.SessionLocal() as db:
                q = db.query(Appointment)
                if date is not None:
                    q = q.filter(Appointment.date == date)
                if department is not None:
                    q = q.filter(Appointment.department == Department(department).value)
                if phone is not None:
                    q = q.filter(Appointment.patient_phone == phone)
                if upcoming:
                    q = q.filter(_after(now or datetime.now()))
                rows = q.order_by(Appointment.date, Appointment.time_slot).all()
                return [AppointmentRecord.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise AppointmentStoreError(f"Could not query appointments: {e}") from e

    def find_by_phone(
        self,
        phone: str,
        upcoming: bool = False,
        now: Optional[datetime] = None
    ) -> List[AppointmentRecord]:
        """
        Appointments whose phone matches after normalization (country code, spaces).

        Args:
            phone: Any formatting of the patient's number
            upcoming: Only appointments after now
            now: Reference time for upcoming (default: local now)
        """
        normalized = normalize_phone_number(phone)
        if not normalized:
            return []
        try:
            with self.SessionLocal() as db:
                q = db.query(Appointment).filter(
                    Appointment.patient_phone.like(f"%{normalized[-4:]}")
                )
                if upcoming:
                    q = q.filter(_after(now or datetime.now()))
                rows = q.order_by(Appointment.date, Appointment.time_slot).all()
                return [
                    AppointmentRecord.model_validate(row) for row in rows
                    if normalize_phone_number(row.patient_phone) == normalized
                ]
        except SQLAlchemyError as e:
            raise AppointmentStoreError(f"Could not query appointments: {e}") from e

    def get(self, appointment_id: int) -> Optional[AppointmentRecord]:
        try:
            with self.SessionLocal() as db:
                row = db.get(Appointment, appointment_id)
                return AppointmentRecord.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise AppointmentStoreError(f"Could not load appointment: {e}") from e

    def update(self, appointment_id: int, data: AppointmentUpdate) -> Optional[AppointmentRecord]:
        """
        Apply a partial update.

        Returns:
            Updated record, or None if the appointment does not exist

        Raises:
            SlotAlreadyBookedError: If the new slot collides with another booking
            AppointmentStoreError: On any other database failure
        """
        changes = data.model_dump(exclude_unset=True)
        if "time_slot" in changes and changes["time_slot"] is not None:
            changes["time_slot"] = _to_time(changes["time_slot"])
        if changes.get("department") is not None:
            changes["department"] = Department(changes["department"]).value

        try:
            with self.SessionLocal() as db:
                row = db.get(Appointment, appointment_id)
                if row is None:
                    return None
                for name, value in changes.items():
                    setattr(row, name, value)
                db.commit()
                db.refresh(row)
                return AppointmentRecord.model_validate(row)
        except IntegrityError as e:
            if _is_slot_conflict(e):
                raise SlotAlreadyBookedError("Requested slot is already booked") from e
            raise AppointmentStoreError(f"Could not update appointment: {e.orig}") from e
        except SQLAlchemyError as e:
            raise AppointmentStoreError(f"Could not update appointment: {e}") from e

    def delete(self, appointment_id: int) -> bool:
        """
        Returns:
            True if a row was deleted
        """
        try:
            with self.SessionLocal() as db:
                row = db.get(Appointment, appointment_id)
                if row is None:
                    return False
                db.delete(row)
                db.commit()
                return True
        except SQLAlchemyError as e:
            raise AppointmentStoreError(f"Could not delete appointment: {e}") from e
