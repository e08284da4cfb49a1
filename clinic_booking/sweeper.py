"""Background eviction of stale reservations and sessions.

One pass:
- drops reservations older than the reservation TTL (5 minutes)
- drops sessions idle for 30 minutes, or holding a reservation taken more
  than 30 minutes ago, releasing that session's reservation in the same pass
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from clinic_booking import config
from clinic_booking.logging_config import get_logger
from clinic_booking.reservations import ReservationTable
from clinic_booking.session_store import ConversationStateStore

logger = get_logger(__name__)


@dataclass
class SweepResult:
    reservations_evicted: int = 0
    sessions_evicted: int = 0


class Sweeper:
    """Periodic cleanup of the two in-memory stores."""

    def __init__(
        self,
        sessions: ConversationStateStore,
        reservations: ReservationTable,
        inactivity_timeout: int = config.SESSION_INACTIVITY_TIMEOUT,
        reservation_timeout: int = config.SESSION_RESERVATION_TIMEOUT,
        interval: int = config.SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time
    ):
        self.sessions = sessions
        self.reservations = reservations
        self.inactivity_timeout = inactivity_timeout
        self.reservation_timeout = reservation_timeout
        self.interval = interval
        self.clock = clock

    def sweep_once(self) -> SweepResult:
        """
        Run one eviction pass.

        Returns:
            Counts of evicted reservations and sessions
        """
        now = self.clock()
        result = SweepResult()

        for user_id, session in self.sessions.snapshot():
            inactive = now - session.last_activity_at > self.inactivity_timeout
            stale_hold = (
                session.reserved_at is not None
                and now - session.reserved_at > self.reservation_timeout
            )
            if not (inactive or stale_hold):
                continue

            key = session.reservation_key()
            if key is not None:
                current = self.reservations.get(key)
                if current is not None and current.holder == user_id:
                    self.reservations.release(key)
                    result.reservations_evicted += 1
            self.sessions.delete(user_id)
            result.sessions_evicted += 1

        result.reservations_evicted += self.reservations.cleanup_expired()

        if result.reservations_evicted or result.sessions_evicted:
            logger.info(
                "sweep_completed",
                reservations_evicted=result.reservations_evicted,
                sessions_evicted=result.sessions_evicted,
            )
        return result

    async def run(self):
        """Sweep every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("sweep_failed")
