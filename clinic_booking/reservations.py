"""Temporary slot reservations.

Short-lived, in-process holds on a (date, department, slot) while a user is
mid-flow. The appointments table's unique constraint stays the final word on
double booking; this table only gives fast feedback to a second user.

NOT shared across processes: each worker holds its own table.
"""
import threading
import time
from typing import Callable, Dict, List, NamedTuple, Optional

from clinic_booking import config
from clinic_booking.logging_config import get_logger

logger = get_logger(__name__)


class SlotKey(NamedTuple):
    """Composite reservation key."""
    date: str  # ISO yyyy-mm-dd
    department: str
    slot: str  # 24h HH:MM


class Reservation(NamedTuple):
    holder: str
    timestamp: float


class ReservationTable:
    """
    Map from SlotKey to (holder, timestamp) with TTL eviction.

    Pattern: In-memory TTL map, lock-guarded for thread safety.
    """

    def __init__(
        self,
        ttl: int = config.RESERVATION_TTL,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize reservation table.

        Args:
            ttl: Seconds a reservation stays live (default: 5 minutes)
            clock: Time source returning epoch seconds
        """
        self.ttl = ttl
        self.clock = clock
        self._reservations: Dict[SlotKey, Reservation] = {}
        self._lock = threading.Lock()

    def _is_expired(self, reservation: Reservation, now: float) -> bool:
        return now - reservation.timestamp > self.ttl

    def try_reserve(self, key: SlotKey, holder: str) -> bool:
        """
        Hold a slot for holder.

        Succeeds when the key is free, expired, or already held by the same
        holder (timestamp is refreshed). Fails when another holder has it.

        Args:
            key: Slot to hold
            holder: User identifier

        Returns:
            True if holder now owns the reservation
        """
        with self._lock:
            now = self.clock()
            current = self._reservations.get(key)
            if (
                current is not None
                and current.holder != holder
                and not self._is_expired(current, now)
            ):
                logger.info("reservation_conflict", key=key, holder=holder, held_by=current.holder)
                return False

            self._reservations[key] = Reservation(holder, now)
            return True

    def release(self, key: SlotKey) -> None:
        """Drop a reservation (no-op if absent)."""
        with self._lock:
            self._reservations.pop(key, None)

    def get(self, key: SlotKey) -> Optional[Reservation]:
        """Live reservation for key, or None."""
        with self._lock:
            current = self._reservations.get(key)
            if current is None or self._is_expired(current, self.clock()):
                return None
            return current

    def is_held_by_other(self, key: SlotKey, holder: str) -> bool:
        """True if a live reservation for key belongs to someone else."""
        current = self.get(key)
        return current is not None and current.holder != holder

    def held_slots(self, date: str, department: str) -> List[str]:
        """Slots with a live reservation under the (date, department) prefix."""
        with self._lock:
            now = self.clock()
            return [
                key.slot for key, reservation in self._reservations.items()
                if key.date == date
                and key.department == department
                and not self._is_expired(reservation, now)
            ]

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of evicted reservations
        """
        with self._lock:
            now = self.clock()
            expired_keys = [
                key for key, reservation in self._reservations.items()
                if self._is_expired(reservation, now)
            ]
            for key in expired_keys:
                del self._reservations[key]
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._reservations)
