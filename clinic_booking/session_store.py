"""Conversation state store: WhatsApp user id -> BookingSession.

Process-local and ephemeral. A restart drops every session and users simply
start again with "book". Multiple workers each keep their own sessions.
"""
import threading
import time
from dataclasses import fields
from typing import Any, Callable, Dict, List, Tuple

from clinic_booking.state import BookingSession, BookingStep

_SESSION_FIELDS = {f.name for f in fields(BookingSession)}


class ConversationStateStore:
    """
    Owns every in-progress booking session.

    Every mutation refreshes last_activity_at, which feeds the inactivity sweep.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the store.

        Args:
            clock: Time source returning epoch seconds
        """
        self.clock = clock
        self._sessions: Dict[str, BookingSession] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> BookingSession:
        """Return the user's session, creating an idle one if absent."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = BookingSession(last_activity_at=self.clock())
                self._sessions[user_id] = session
            return session

    def set(self, user_id: str, session: BookingSession) -> None:
        with self._lock:
            session.last_activity_at = self.clock()
            self._sessions[user_id] = session

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)

    def update_step(self, user_id: str, step: BookingStep) -> BookingSession:
        return self.apply_patch(user_id, step=step)

    def apply_patch(self, user_id: str, **updates: Any) -> BookingSession:
        """
        Merge fields into the user's session.

        Args:
            user_id: WhatsApp user id
            **updates: BookingSession field values

        Returns:
            The updated session

        Raises:
            AttributeError: If a key is not a BookingSession field
        """
        unknown = set(updates) - _SESSION_FIELDS
        if unknown:
            raise AttributeError(f"Unknown session fields: {sorted(unknown)}")

        session = self.get(user_id)
        with self._lock:
            for name, value in updates.items():
                setattr(session, name, value)
            session.last_activity_at = self.clock()
        return session

    def exists(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._sessions

    def snapshot(self) -> List[Tuple[str, BookingSession]]:
        """Copy of (user_id, session) pairs, safe to iterate while mutating."""
        with self._lock:
            return list(self._sessions.items())

    def __len__(self) -> int:
        return len(self._sessions)
