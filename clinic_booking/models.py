"""SQLAlchemy models for the appointments store."""
from datetime import datetime, UTC

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

SLOT_UNIQUE_CONSTRAINT = "uq_appointments_date_slot_department"


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Appointment(Base):
    """A booked slot. (date, time_slot, department) is unique."""
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("date", "time_slot", "department", name=SLOT_UNIQUE_CONSTRAINT),
        CheckConstraint("department IN ('Ortho', 'ENT')", name="ck_appointments_department"),
        Index("idx_appointments_datetime", "date", "time_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    time_slot = Column(Time, nullable=False)
    patient_name = Column(String(255), nullable=False)
    department = Column(String(50), nullable=False, index=True)
    patient_phone = Column(String(20), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, date={self.date}, "
            f"slot={self.time_slot}, department={self.department})>"
        )
