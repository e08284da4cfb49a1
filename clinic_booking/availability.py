"""Slot availability for a date and department.

available = canonical slots - booked (database) - reserved (in-flight holds
by other users). Date rules run first so a bad date never costs a query.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Union

from clinic_booking import config
from clinic_booking.appointment_store import AppointmentStore, AppointmentStoreError
from clinic_booking.logging_config import get_logger
from clinic_booking.reservations import ReservationTable
from clinic_booking.state import Department
from clinic_booking.time_utils import normalize_time_value
from clinic_booking.validation import (
    DateError,
    check_booking_date,
    is_weekday,
    parse_iso_date,
)

logger = get_logger(__name__)

STORE_ERROR_MESSAGE = "Failed to get available slots"


@dataclass
class AvailabilityResult:
    available: List[str] = field(default_factory=list)
    booked: List[str] = field(default_factory=list)
    reserved: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[DateError] = None
    store_failed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DayAvailability:
    date: date
    departments: Dict[Department, AvailabilityResult]


class AvailabilityCalculator:
    """Combine business rules, stored appointments and live reservations."""

    def __init__(
        self,
        store: AppointmentStore,
        reservations: ReservationTable,
        today: Callable[[], date] = date.today,
        slots: Optional[List[str]] = None
    ):
        """
        Args:
            store: Durable appointment store
            reservations: Temporary reservation table
            today: Provider of the current local date
            slots: Canonical slot list (default: config.TIME_SLOTS)
        """
        self.store = store
        self.reservations = reservations
        self.today = today
        self.slots = list(slots or config.TIME_SLOTS)

    async def available_slots(
        self,
        day: Union[str, date],
        department: Department
    ) -> AvailabilityResult:
        """
        Compute bookable slots.

        Args:
            day: ISO yyyy-mm-dd string or date
            department: Department

        Returns:
            AvailabilityResult; error is set (and lists empty) when the date
            breaks a rule or the store is unreachable
        """
        value = day if isinstance(day, date) else parse_iso_date(day)
        if value is None:
            return AvailabilityResult(
                error="Invalid date format. Please use dd/mm/yyyy format (e.g., 25/12/2024).",
                error_kind=DateError.INVALID_FORMAT
            )

        violation = check_booking_date(value, self.today())
        if violation:
            kind, message = violation
            return AvailabilityResult(error=message, error_kind=kind)

        department = Department(department)
        try:
            appointments = await asyncio.to_thread(
                self.store.query, date=value, department=department
            )
        except AppointmentStoreError as e:
            logger.error("availability_query_failed", date=value.isoformat(),
                         department=department.value, error=str(e))
            return AvailabilityResult(error=STORE_ERROR_MESSAGE, store_failed=True)

        booked_set = {normalize_time_value(a.time_slot) for a in appointments}
        booked = [slot for slot in self.slots if slot in booked_set]
        open_slots = [slot for slot in self.slots if slot not in booked_set]

        held = set(self.reservations.held_slots(value.isoformat(), department.value))
        reserved = [slot for slot in open_slots if slot in held]
        available = [slot for slot in open_slots if slot not in held]

        return AvailabilityResult(available=available, booked=booked, reserved=reserved)

    async def weekly_overview(
        self,
        days: int = config.BOOKING_RULES["weekly_overview_days"]
    ) -> List[DayAvailability]:
        """Availability for both departments over the next `days` weekdays, today included."""
        overview = []
        current = self.today()
        while len(overview) < days:
            if is_weekday(current):
                results = {}
                for department in Department:
                    results[department] = await self.available_slots(current, department)
                overview.append(DayAvailability(date=current, departments=results))
            current += timedelta(days=1)
        return overview
